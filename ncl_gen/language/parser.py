"""
Recursive descent parser for the NCL configuration language.

Parses tokens from the lexer into an immutable syntax tree. Environment
references are resolved while parsing, so the finished tree only holds
literal strings. Templates and imports are kept as nodes and resolved
by the renderer.
"""

import os
from pathlib import Path
from typing import Mapping

from ..logging import get_logger
from .lexer import Token, TokenType, tokenize
from .nodes import (
    Block,
    ConfigDocument,
    Directive,
    EnvironmentReference,
    ImportReference,
    Location,
    LocationModifier,
    Node,
    TemplateDefinition,
    TemplateReference,
)


logger = get_logger("language.parser")


class ParseError(Exception):
    """Exception raised for parser errors."""

    def __init__(self, message: str, token: Token | None = None):
        self.token = token
        if token:
            super().__init__(f"Line {token.line}, column {token.column}: {message}")
        else:
            super().__init__(message)


class EnvironmentVariableError(ParseError):
    """An %env() reference with no value and no default."""

    def __init__(self, variable: str, token: Token | None = None):
        self.variable = variable
        super().__init__(
            f"Environment variable {variable} is not set and no default value provided",
            token,
        )


class ConfigParser:
    """
    Recursive descent parser for NCL.

    Grammar:
        document    := statement*
        statement   := template | inline | import | location | if | block | directive
        template    := VARIABLE '=' '{' statement* '}' ';'
        inline      := '%inline' '(' VARIABLE ')' ';'
        import      := '%import' '(' STRING ')' ';'
        location    := 'location' 'in' '[' path (',' path)* ']' '{' statement* '}'
                     | 'location' [MODIFIER | '='] path '{' statement* '}'
        if          := 'if' condition '{' statement* '}'
        block       := name argument* '{' statement* '}'
        directive   := name argument* ';'
        argument    := word | STRING | env | '='
        env         := '%env' '(' STRING [',' STRING] ')'

    A word is a run of tokens with no whitespace between them, so
    127.0.0.1:8080, keys_zone=one:10m and [::]:80 stay single arguments.
    """

    # Tokens that may start an unquoted word
    WORD_TYPES = {
        TokenType.IDENTIFIER,
        TokenType.NUMBER,
        TokenType.VARIABLE,
        TokenType.LOCATION,
        TokenType.IN,
        TokenType.LOCATION_MODIFIER,
        TokenType.LBRACKET,
        TokenType.ENV,
    }

    # Tokens that extend a word when they touch the previous token
    GLUE_TYPES = WORD_TYPES | {
        TokenType.EQUALS,
        TokenType.LPAREN,
        TokenType.RPAREN,
        TokenType.RBRACKET,
        TokenType.COMMA,
    }

    # Tokens that may start a block or directive
    NAME_TYPES = WORD_TYPES | {TokenType.STRING}

    def __init__(
        self,
        tokens: list[Token],
        env: Mapping[str, str] | None = None,
        filename: str = "<string>",
    ):
        if not tokens or tokens[-1].type != TokenType.EOF:
            raise ValueError("Token list must end with an EOF token")

        self.tokens = tokens
        self.env = os.environ if env is None else env
        self.filename = filename
        self.pos = 0

    @property
    def _current(self) -> Token:
        return self.tokens[self.pos]

    @property
    def _previous(self) -> Token:
        return self.tokens[self.pos - 1]

    def _peek(self, offset: int = 1) -> Token:
        """Look ahead without consuming, stopping at EOF."""
        return self.tokens[min(self.pos + offset, len(self.tokens) - 1)]

    def _advance(self) -> Token:
        """Consume the current token and return it."""
        token = self._current
        if token.type != TokenType.EOF:
            self.pos += 1
        return token

    def _check(self, *token_types: TokenType) -> bool:
        """Check if current token is one of the given types."""
        return self._current.type in token_types

    def _expect(self, token_type: TokenType, message: str) -> Token:
        """Expect current token to be of given type, advance and return it."""
        if self._current.type != token_type:
            raise ParseError(message, self._current)
        return self._advance()

    @staticmethod
    def _touching(previous: Token, token: Token) -> bool:
        """True when no whitespace separates the two tokens."""
        return (
            token.type != TokenType.EOF
            and previous.line == token.line
            and previous.end_column == token.column
        )

    def parse(self) -> ConfigDocument:
        """Parse the entire token list."""
        children: list[Node] = []

        while not self._check(TokenType.EOF):
            children.append(self._parse_statement())

        logger.debug(f"Parsed {self.filename}: {len(children)} top-level statements")
        return ConfigDocument(children=tuple(children), filename=self.filename)

    def _parse_statement(self) -> Node:
        token = self._current

        if token.type == TokenType.VARIABLE:
            if self._peek().type == TokenType.EQUALS:
                return self._parse_template_definition()
            # A bare %name is an ordinary directive or block name
            return self._parse_block_or_directive()

        if token.type == TokenType.INLINE:
            return self._parse_template_reference()

        if token.type == TokenType.LOCATION:
            return self._parse_location()

        if token.type == TokenType.IMPORT:
            return self._parse_import()

        if token.type == TokenType.IDENTIFIER and token.value == "if":
            return self._parse_if_block()

        if token.type in self.NAME_TYPES:
            return self._parse_block_or_directive()

        raise ParseError(f"Unexpected token {token.value or token.type.name!r}", token)

    def _parse_statements(self, context: str) -> tuple[Node, ...]:
        """Parse '{' statement* '}'."""
        self._expect(TokenType.LBRACE, f"Expected '{{' after {context}")

        children: list[Node] = []
        while not self._check(TokenType.RBRACE, TokenType.EOF):
            children.append(self._parse_statement())

        self._expect(TokenType.RBRACE, f"Expected '}}' to close {context}")
        return tuple(children)

    def _parse_template_definition(self) -> TemplateDefinition:
        name_token = self._advance()
        self._expect(TokenType.EQUALS, "Expected '=' after template name")

        body_token = self._current
        if body_token.type != TokenType.LBRACE:
            raise ParseError(f"Expected '{{' after '{name_token.value} ='", body_token)

        children = self._parse_statements(f"template '{name_token.value}'")
        self._expect(TokenType.SEMICOLON, f"Expected ';' after template '{name_token.value}'")

        body = Block(
            name="",
            children=children,
            line=body_token.line,
            column=body_token.column,
        )
        return TemplateDefinition(
            name=name_token.value,
            body=body,
            line=name_token.line,
            column=name_token.column,
        )

    def _parse_template_reference(self) -> TemplateReference:
        inline_token = self._advance()
        self._expect(TokenType.LPAREN, "Expected '(' after %inline")
        variable = self._expect(TokenType.VARIABLE, "Expected template variable inside %inline()")
        self._expect(TokenType.RPAREN, "Expected ')' after template variable")
        self._expect(TokenType.SEMICOLON, "Expected ';' after %inline()")

        return TemplateReference(
            name=variable.value,
            line=inline_token.line,
            column=inline_token.column,
        )

    def _parse_import(self) -> ImportReference:
        import_token = self._advance()
        self._expect(TokenType.LPAREN, "Expected '(' after %import")
        path_token = self._expect(TokenType.STRING, "Expected string path inside %import()")
        self._expect(TokenType.RPAREN, "Expected ')' after import path")
        self._expect(TokenType.SEMICOLON, "Expected ';' after %import()")

        if not path_token.value:
            raise ParseError("Import path must not be empty", path_token)

        return ImportReference(
            path=path_token.value,
            line=import_token.line,
            column=import_token.column,
        )

    def _read_environment_reference(self) -> EnvironmentReference:
        env_token = self._advance()
        self._expect(TokenType.LPAREN, "Expected '(' after %env")
        name = self._expect(TokenType.STRING, "Expected string literal for environment variable name")

        default = None
        if self._check(TokenType.COMMA):
            self._advance()
            default = self._expect(TokenType.STRING, "Expected string literal for default value").value

        self._expect(TokenType.RPAREN, "Expected ')' after environment variable")

        return EnvironmentReference(
            name=name.value,
            default=default,
            line=env_token.line,
            column=env_token.column,
        )

    def _parse_environment_reference(self) -> str:
        """Parse %env(...) and return the resolved literal."""
        env_token = self._current
        reference = self._read_environment_reference()

        value = self.env.get(reference.name)
        if value is not None:
            logger.debug(f"Resolved %env({reference.name}) from environment")
            return value

        if reference.default is not None:
            logger.debug(f"Resolved %env({reference.name}) to its default")
            return reference.default

        raise EnvironmentVariableError(reference.name, env_token)

    def _read_word(self) -> str:
        """Read touching tokens as one unquoted word."""
        parts: list[str] = []

        while True:
            if self._check(TokenType.ENV):
                parts.append(self._parse_environment_reference())
            else:
                parts.append(self._advance().value)

            following = self._current
            if following.type not in self.GLUE_TYPES or not self._touching(self._previous, following):
                break

        return "".join(parts)

    def _read_name(self) -> str:
        token = self._current

        if token.type == TokenType.STRING:
            # Keep the quotes so names like "~*bot" render as written
            name = self._advance().raw
        else:
            name = self._read_word()

        if not name:
            raise ParseError("Expected directive name", token)
        return name

    def _has_brace_ahead(self) -> bool:
        """Look ahead for '{' before the next ';' or end of input."""
        for token in self.tokens[self.pos:]:
            if token.type == TokenType.LBRACE:
                return True
            if token.type in (TokenType.SEMICOLON, TokenType.EOF):
                return False
        return False

    def _parse_arguments(self, name: str, name_token: Token, block: bool) -> tuple[str, ...]:
        """Collect arguments up to ';' (directives) or '{' (blocks)."""
        args: list[str] = []

        while True:
            token = self._current

            if token.type in (TokenType.SEMICOLON, TokenType.EOF):
                break

            if token.type == TokenType.LBRACE and block:
                break

            if token.type in (TokenType.LBRACE, TokenType.RBRACE):
                raise ParseError(f"Expected ';' after '{name}'", token)

            # 'location' never opens a block header argument
            if token.type == TokenType.LOCATION and block:
                raise ParseError(f"Expected ';' after '{name}'", token)

            # A word on a later line most likely starts the next statement
            if not block and token.line > name_token.line and token.type == TokenType.IDENTIFIER:
                break

            if token.type == TokenType.STRING:
                args.append(self._advance().value)
            elif token.type == TokenType.EQUALS:
                # =404 stays one argument, a spaced '=' stands alone
                args.append(self._read_word())
            elif token.type in self.WORD_TYPES:
                args.append(self._read_word())
            else:
                break

        return tuple(args)

    def _parse_block_or_directive(self) -> Block | Directive:
        name_token = self._current
        is_block = self._has_brace_ahead()
        name = self._read_name()

        args = self._parse_arguments(name, name_token, block=is_block)

        if is_block:
            children = self._parse_statements(f"'{name}'")
            return Block(
                name=name,
                args=args,
                children=children,
                line=name_token.line,
                column=name_token.column,
            )

        self._expect(TokenType.SEMICOLON, f"Expected ';' after directive '{name}'")
        return Directive(
            name=name,
            args=args,
            line=name_token.line,
            column=name_token.column,
        )

    def _read_condition_part(self) -> tuple[str, Token, Token]:
        """Read one condition token as raw text, with %env() resolved."""
        first = self._current
        if first.type == TokenType.ENV:
            text = self._parse_environment_reference()
        else:
            self._advance()
            text = first.raw or first.value
        return text, first, self._previous

    def _parse_if_block(self) -> Block:
        """
        Parse an if block, keeping the condition as written.

        The condition is not interpreted; its tokens are kept as raw
        text, joined where they touch in the source. %env() references
        are the exception and are replaced by their values.
        """
        if_token = self._advance()
        condition: list[tuple[str, Token, Token]] = []

        if self._check(TokenType.LPAREN):
            self._advance()
            depth = 1
            while True:
                token = self._current
                if token.type in (TokenType.EOF, TokenType.LBRACE):
                    raise ParseError("Expected ')' to close 'if' condition", token)
                if token.type == TokenType.RPAREN:
                    depth -= 1
                    if depth == 0:
                        self._advance()
                        break
                elif token.type == TokenType.LPAREN:
                    depth += 1
                condition.append(self._read_condition_part())
        else:
            while not self._check(TokenType.LBRACE, TokenType.EOF):
                condition.append(self._read_condition_part())

        args: list[str] = []
        previous: Token | None = None
        for text, first, last in condition:
            if previous is not None and self._touching(previous, first):
                args[-1] += text
            else:
                args.append(text)
            previous = last

        children = self._parse_statements("'if' condition")
        return Block(
            name="if",
            args=tuple(args),
            children=children,
            line=if_token.line,
            column=if_token.column,
        )

    def _parse_location(self) -> Location:
        location_token = self._advance()
        modifier = LocationModifier.NONE
        paths: list[str] = []

        if self._check(TokenType.IN):
            self._advance()
            self._expect(TokenType.LBRACKET, "Expected '[' after 'location in'")

            while not self._check(TokenType.RBRACKET):
                if self._check(TokenType.ENV):
                    paths.append(self._parse_environment_reference())
                elif self._check(TokenType.STRING):
                    paths.append(self._advance().value)
                else:
                    raise ParseError(
                        "Expected string or environment variable in location path list",
                        self._current,
                    )

                if self._check(TokenType.COMMA):
                    self._advance()
                elif not self._check(TokenType.RBRACKET):
                    raise ParseError("Expected ',' or ']' in location path list", self._current)

            self._expect(TokenType.RBRACKET, "Expected ']' after location paths")

            if not paths:
                raise ParseError("Expected at least one path in location path list", self._previous)
        else:
            if self._check(TokenType.LOCATION_MODIFIER):
                modifier = LocationModifier.from_token(self._advance().value)
            elif self._check(TokenType.EQUALS):
                self._advance()
                modifier = LocationModifier.EXACT

            if self._check(TokenType.STRING):
                paths.append(self._advance().value)
            elif self._check(*self.WORD_TYPES):
                paths.append(self._read_word())
            else:
                raise ParseError("Expected path after 'location'", self._current)

        children = self._parse_statements("location path")
        return Location(
            paths=tuple(paths),
            modifier=modifier,
            children=children,
            line=location_token.line,
            column=location_token.column,
        )


def parse_tokens(
    tokens: list[Token],
    env: Mapping[str, str] | None = None,
    filename: str = "<string>",
) -> ConfigDocument:
    """Parse an already tokenized source."""
    return ConfigParser(tokens, env, filename).parse()


def parse(
    source: str,
    env: Mapping[str, str] | None = None,
    filename: str = "<string>",
) -> ConfigDocument:
    """
    Convenience function to parse an NCL string.

    Args:
        source: NCL source code
        env: Environment used for %env() lookups (defaults to os.environ)
        filename: Filename for log messages and the resulting document

    Returns:
        Parsed ConfigDocument
    """
    return parse_tokens(tokenize(source, filename), env, filename)


def parse_file(path: str | Path, env: Mapping[str, str] | None = None) -> ConfigDocument:
    """
    Parse an NCL file.

    Args:
        path: Path to the NCL file
        env: Environment used for %env() lookups (defaults to os.environ)

    Returns:
        Parsed ConfigDocument
    """
    path = Path(path)
    return parse(path.read_text(encoding="utf-8"), env, str(path))
