"""
Lexer (tokenizer) for the NCL configuration language.

Supports:
- Identifiers (directive names, paths, nginx $variables, anything unquoted)
- Quoted strings (single or double quotes with backslash escapes)
- Numbers (plain digit runs)
- Braces, brackets, parentheses, semicolons, commas and equals signs
- Location keywords and match modifiers (~, ~*, ^~)
- %-prefixed template variables and the %inline, %env and %import keywords
- Single-line (#) comments
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator

from ..logging import get_logger


logger = get_logger("language.lexer")


class TokenType(Enum):
    """Token types for the NCL syntax."""

    # Literals
    IDENTIFIER = auto()    # bare word, also the fallback for unknown characters
    NUMBER = auto()        # 80, 1024
    STRING = auto()        # "quoted string"

    # Keywords
    LOCATION = auto()      # location
    IN = auto()            # in

    # Extensions
    VARIABLE = auto()      # %name
    INLINE = auto()        # %inline
    ENV = auto()           # %env
    IMPORT = auto()        # %import
    LOCATION_MODIFIER = auto()  # ~, ~*, ^~

    # Delimiters
    LBRACE = auto()        # {
    RBRACE = auto()        # }
    LBRACKET = auto()      # [
    RBRACKET = auto()      # ]
    LPAREN = auto()        # (
    RPAREN = auto()        # )
    SEMICOLON = auto()     # ;
    COMMA = auto()         # ,
    EQUALS = auto()        # =

    EOF = auto()           # end of input


@dataclass
class Token:
    """A single token from the lexer."""

    type: TokenType
    value: str
    line: int
    column: int
    raw: str = ""  # Original text representation

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"

    @property
    def end_column(self) -> int:
        """Column just past the last character of the token."""
        return self.column + len(self.raw)


class LexerError(Exception):
    """Exception raised for lexer errors."""

    def __init__(self, message: str, line: int, column: int):
        self.line = line
        self.column = column
        super().__init__(f"Line {line}, column {column}: {message}")


class Lexer:
    """
    Tokenizer for NCL source.

    Example source:
        %headers = {
            add_header X-Frame-Options SAMEORIGIN;
        };

        server {
            listen %env("PORT", "80");
            %inline(%headers);
            location in ["/api", "=/health"] {
                return 200;
            }
        }
    """

    PUNCTUATION = {
        "{": TokenType.LBRACE,
        "}": TokenType.RBRACE,
        "[": TokenType.LBRACKET,
        "]": TokenType.RBRACKET,
        "(": TokenType.LPAREN,
        ")": TokenType.RPAREN,
        ";": TokenType.SEMICOLON,
        ",": TokenType.COMMA,
        "=": TokenType.EQUALS,
    }

    # Words following the % sigil that form keyword tokens
    SIGIL_KEYWORDS = {
        "inline": TokenType.INLINE,
        "env": TokenType.ENV,
        "import": TokenType.IMPORT,
    }

    # Bare words with their own token types
    KEYWORDS = {
        "location": TokenType.LOCATION,
        "in": TokenType.IN,
    }

    SIGIL = "%"

    # Characters that end an unquoted word
    WORD_DELIMITERS = set("{}[];,=\"'()")

    def __init__(self, source: str, filename: str = "<string>"):
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.column = 1

    def _current(self) -> str:
        """Get current character or empty string if at end."""
        if self.pos >= len(self.source):
            return ""
        return self.source[self.pos]

    def _peek(self, offset: int = 1) -> str:
        """Peek at character at offset from current position."""
        pos = self.pos + offset
        if pos >= len(self.source):
            return ""
        return self.source[pos]

    def _advance(self) -> str:
        """Advance position and return current character."""
        if self.pos >= len(self.source):
            return ""

        char = self.source[self.pos]
        self.pos += 1

        if char == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1

        return char

    def _skip_whitespace_and_comments(self) -> None:
        """Skip all whitespace and # comments."""
        while True:
            char = self._current()
            if char and char.isspace():
                self._advance()
            elif char == "#":
                while self._current() and self._current() != "\n":
                    self._advance()
            else:
                break

    @staticmethod
    def _is_identifier_part(char: str) -> bool:
        return bool(char) and (char.isalnum() or char == "_")

    def _is_word_part(self, char: str) -> bool:
        if char == self.SIGIL and self._is_identifier_part(self._peek()):
            # 127.0.0.1:%env("PORT") continues with a sigil token
            return False
        return bool(char) and not char.isspace() and char not in self.WORD_DELIMITERS

    def _read_string(self) -> Token:
        """Read a quoted string literal."""
        start_line = self.line
        start_col = self.column
        start_pos = self.pos
        quote_char = self._advance()

        result = []

        while self._current() and self._current() != quote_char:
            char = self._advance()
            if char == "\\" and self._current():
                result.append(self._advance())
            else:
                result.append(char)

        if not self._current():
            raise LexerError("Unterminated string", start_line, start_col)

        self._advance()  # skip closing quote

        return Token(
            type=TokenType.STRING,
            value="".join(result),
            line=start_line,
            column=start_col,
            raw=self.source[start_pos:self.pos],
        )

    def _read_sigil(self) -> Token:
        """Read a %variable or one of the %inline, %env, %import keywords."""
        start_line = self.line
        start_col = self.column
        start_pos = self.pos

        if not self._is_identifier_part(self._peek()):
            # A lone sigil is just part of a word
            return self._read_identifier()

        self._advance()  # skip sigil
        while self._is_identifier_part(self._current()):
            self._advance()

        raw = self.source[start_pos:self.pos]
        token_type = self.SIGIL_KEYWORDS.get(raw[1:], TokenType.VARIABLE)

        return Token(token_type, raw, start_line, start_col, raw)

    def _at_location_modifier(self) -> bool:
        char = self._current()
        return char == "~" or (char == "^" and self._peek() == "~")

    def _read_location_modifier(self) -> Token:
        """Read ~, ~* or ^~, longest match first."""
        start_line = self.line
        start_col = self.column

        if self._current() == "~" and self._peek() == "*":
            value = "~*"
        elif self._current() == "^":
            value = "^~"
        else:
            value = "~"

        for _ in value:
            self._advance()

        return Token(TokenType.LOCATION_MODIFIER, value, start_line, start_col, value)

    def _read_number(self) -> Token:
        """Read a run of digits."""
        start_line = self.line
        start_col = self.column
        start_pos = self.pos

        while self._current().isdigit():
            self._advance()

        raw = self.source[start_pos:self.pos]
        return Token(TokenType.NUMBER, raw, start_line, start_col, raw)

    def _read_identifier(self) -> Token:
        """Read an unquoted word or keyword."""
        start_line = self.line
        start_col = self.column
        start_pos = self.pos

        # Always consume the first character so unknown symbols make progress
        self._advance()
        while self._is_word_part(self._current()):
            self._advance()

        raw = self.source[start_pos:self.pos]
        token_type = self.KEYWORDS.get(raw, TokenType.IDENTIFIER)

        return Token(token_type, raw, start_line, start_col, raw)

    def next_token(self) -> Token:
        """Get the next token from the source."""
        self._skip_whitespace_and_comments()

        if self.pos >= len(self.source):
            return Token(
                type=TokenType.EOF,
                value="",
                line=self.line,
                column=self.column,
            )

        char = self._current()
        start_line = self.line
        start_col = self.column

        # Single character tokens
        if char in self.PUNCTUATION:
            self._advance()
            return Token(self.PUNCTUATION[char], char, start_line, start_col, char)

        # String literals
        if char == '"' or char == "'":
            return self._read_string()

        # Template variables and extension keywords
        if char == self.SIGIL:
            return self._read_sigil()

        if self._at_location_modifier():
            return self._read_location_modifier()

        if char.isdigit():
            return self._read_number()

        # Identifiers, keywords, and anything else
        return self._read_identifier()

    def tokenize(self) -> Iterator[Token]:
        """Generate all tokens from the source."""
        while True:
            token = self.next_token()
            yield token
            if token.type == TokenType.EOF:
                break

    def __iter__(self) -> Iterator[Token]:
        """Allow iteration over tokens."""
        return self.tokenize()


def tokenize(source: str, filename: str = "<string>") -> list[Token]:
    """Convenience function to tokenize a source string."""
    tokens = list(Lexer(source, filename))
    logger.debug(f"Tokenized {filename}: {len(tokens)} tokens")
    return tokens
