"""
ncl-gen - compile NCL (nginx configuration language) to nginx.conf.

NCL is nginx configuration syntax plus reusable block templates,
environment variable interpolation, file imports and multi-path
location blocks.

    from ncl_gen import parse, render

    text = render(parse('location in ["/a", "/b"] { return 204; }'))
"""

from .const import APP_VERSION
from .language import (
    CompileError,
    ConfigDocument,
    NclLoader,
    ParseError,
    RenderError,
    RenderOptions,
    parse,
    render,
    tokenize,
)
from .validator import NginxValidator, ValidatorOptions

__version__ = APP_VERSION

# The three pipeline stages
lex = tokenize

__all__ = [
    "__version__",
    "lex",
    "parse",
    "render",
    "RenderOptions",
    "ConfigDocument",
    "NclLoader",
    "ParseError",
    "RenderError",
    "CompileError",
    "NginxValidator",
    "ValidatorOptions",
]
