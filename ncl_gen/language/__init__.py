"""
NCL language module: lexer, parser, renderer and file loader.
"""

from .lexer import Lexer, LexerError, Token, TokenType, tokenize
from .loader import CompileError, NclLoader
from .nodes import (
    Block,
    ConfigDocument,
    Directive,
    ImportReference,
    Location,
    LocationModifier,
    NodeKind,
    TemplateDefinition,
    TemplateReference,
)
from .parser import ConfigParser, EnvironmentVariableError, ParseError, parse
from .renderer import (
    ImportCycleError,
    ImportNotFoundError,
    RecursiveTemplateError,
    RenderError,
    RenderOptions,
    Renderer,
    UndefinedTemplateError,
    render,
)

__all__ = [
    "Lexer",
    "LexerError",
    "Token",
    "TokenType",
    "tokenize",
    "ConfigParser",
    "ParseError",
    "EnvironmentVariableError",
    "parse",
    "ConfigDocument",
    "Directive",
    "Block",
    "Location",
    "LocationModifier",
    "NodeKind",
    "TemplateDefinition",
    "TemplateReference",
    "ImportReference",
    "Renderer",
    "RenderOptions",
    "RenderError",
    "UndefinedTemplateError",
    "RecursiveTemplateError",
    "ImportNotFoundError",
    "ImportCycleError",
    "render",
    "NclLoader",
    "CompileError",
]
