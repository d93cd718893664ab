"""
Tests for the NCL lexer.
"""

import pytest

from ncl_gen.language.lexer import Lexer, LexerError, TokenType, tokenize


def kinds(source: str) -> list[tuple[TokenType, str]]:
    return [(token.type, token.value) for token in tokenize(source)]


def positions(source: str) -> list[tuple[str, int, int]]:
    return [(token.value, token.line, token.column) for token in tokenize(source)]


def test_simple_directive() -> None:
    """Test token positions for a single directive."""
    assert positions("worker_processes auto;") == [
        ("worker_processes", 1, 1),
        ("auto", 1, 18),
        (";", 1, 22),
        ("", 1, 23),
    ]


def test_block_positions_across_lines() -> None:
    source = "http {\n  server_name example.com;\n}"

    assert positions(source) == [
        ("http", 1, 1),
        ("{", 1, 6),
        ("server_name", 2, 3),
        ("example.com", 2, 15),
        (";", 2, 26),
        ("}", 3, 1),
        ("", 3, 2),
    ]


def test_strings_strip_quotes() -> None:
    """Test that string tokens carry the value without quotes."""
    tokens = tokenize("add_header \"X-Content-Type\" 'text/html';")

    assert [t.type for t in tokens] == [
        TokenType.IDENTIFIER,
        TokenType.STRING,
        TokenType.STRING,
        TokenType.SEMICOLON,
        TokenType.EOF,
    ]
    assert tokens[1].value == "X-Content-Type"
    assert tokens[1].raw == '"X-Content-Type"'
    assert tokens[1].column == 12
    assert tokens[2].value == "text/html"
    assert tokens[2].column == 29
    assert tokens[3].column == 40


def test_string_escapes() -> None:
    """Test backslash escapes in strings."""
    tokens = tokenize(r'"say \"hi\""')

    assert tokens[0].value == 'say "hi"'


def test_multiline_string_keeps_start_position() -> None:
    tokens = tokenize('"a\nb" c')

    assert (tokens[0].line, tokens[0].column) == (1, 1)
    assert tokens[0].value == "a\nb"
    assert (tokens[1].value, tokens[1].line, tokens[1].column) == ("c", 2, 4)


def test_unterminated_string() -> None:
    """Test that an unterminated string reports its start."""
    with pytest.raises(LexerError) as exc_info:
        tokenize('server_name "example.com')

    assert exc_info.value.line == 1
    assert exc_info.value.column == 13
    assert "Unterminated string" in str(exc_info.value)


def test_comments_are_skipped() -> None:
    """Test that # comments produce no tokens."""
    source = "# top comment\nworker_processes 1; # trailing"

    assert kinds(source) == [
        (TokenType.IDENTIFIER, "worker_processes"),
        (TokenType.NUMBER, "1"),
        (TokenType.SEMICOLON, ";"),
        (TokenType.EOF, ""),
    ]


def test_location_with_modifier() -> None:
    assert positions("location ~ /api { }") == [
        ("location", 1, 1),
        ("~", 1, 10),
        ("/api", 1, 12),
        ("{", 1, 17),
        ("}", 1, 19),
        ("", 1, 20),
    ]
    assert tokenize("location ~ /api { }")[1].type == TokenType.LOCATION_MODIFIER


def test_location_in_path_list() -> None:
    """Test the tokens of location in [...]."""
    source = 'location in ["/api", "=/exact", "~/regex"] { }'
    tokens = tokenize(source)

    assert [t.type for t in tokens] == [
        TokenType.LOCATION,
        TokenType.IN,
        TokenType.LBRACKET,
        TokenType.STRING,
        TokenType.COMMA,
        TokenType.STRING,
        TokenType.COMMA,
        TokenType.STRING,
        TokenType.RBRACKET,
        TokenType.LBRACE,
        TokenType.RBRACE,
        TokenType.EOF,
    ]
    assert [t.column for t in tokens[:11]] == [1, 10, 13, 14, 20, 22, 31, 33, 42, 44, 46]
    assert [t.value for t in tokens if t.type == TokenType.STRING] == ["/api", "=/exact", "~/regex"]


def test_location_modifiers() -> None:
    assert kinds("~* ^~ ~") == [
        (TokenType.LOCATION_MODIFIER, "~*"),
        (TokenType.LOCATION_MODIFIER, "^~"),
        (TokenType.LOCATION_MODIFIER, "~"),
        (TokenType.EOF, ""),
    ]


def test_template_definition_tokens() -> None:
    """Test the tokens of a template definition."""
    tokens = tokenize("%common_headers = {")

    assert tokens[0].type == TokenType.VARIABLE
    assert tokens[0].value == "%common_headers"
    assert tokens[1].type == TokenType.EQUALS
    assert tokens[1].column == 17
    assert tokens[2].type == TokenType.LBRACE


def test_inline_reference_tokens() -> None:
    assert positions("%inline(%common_headers);") == [
        ("%inline", 1, 1),
        ("(", 1, 8),
        ("%common_headers", 1, 9),
        (")", 1, 24),
        (";", 1, 25),
        ("", 1, 26),
    ]
    assert tokenize("%inline(%x);")[0].type == TokenType.INLINE


def test_env_tokens() -> None:
    """Test the tokens of %env()."""
    assert kinds('%env("PORT", "8080")') == [
        (TokenType.ENV, "%env"),
        (TokenType.LPAREN, "("),
        (TokenType.STRING, "PORT"),
        (TokenType.COMMA, ","),
        (TokenType.STRING, "8080"),
        (TokenType.RPAREN, ")"),
        (TokenType.EOF, ""),
    ]


def test_import_tokens() -> None:
    tokens = tokenize('%import("/path/to/file.ncl");')

    assert tokens[0].type == TokenType.IMPORT
    assert tokens[1].column == 8
    assert (tokens[2].type, tokens[2].value, tokens[2].column) == (TokenType.STRING, "/path/to/file.ncl", 9)


def test_sigil_keyword_prefix_is_a_variable() -> None:
    """Test that keywords only match whole names after the sigil."""
    tokens = tokenize("%inline_headers")

    assert tokens[0].type == TokenType.VARIABLE
    assert tokens[0].value == "%inline_headers"


def test_lone_sigil_is_an_identifier() -> None:
    """Test that a lone % is plain text."""
    assert kinds("a % b") == [
        (TokenType.IDENTIFIER, "a"),
        (TokenType.IDENTIFIER, "%"),
        (TokenType.IDENTIFIER, "b"),
        (TokenType.EOF, ""),
    ]


def test_nginx_variables_are_identifiers() -> None:
    assert kinds("try_files $uri $uri/") == [
        (TokenType.IDENTIFIER, "try_files"),
        (TokenType.IDENTIFIER, "$uri"),
        (TokenType.IDENTIFIER, "$uri/"),
        (TokenType.EOF, ""),
    ]


def test_unknown_characters_fall_back_to_identifier() -> None:
    tokens = tokenize("server_name example.com!;")

    assert (tokens[1].type, tokens[1].value) == (TokenType.IDENTIFIER, "example.com!")


def test_keywords_only_match_whole_words() -> None:
    assert kinds("locations index") == [
        (TokenType.IDENTIFIER, "locations"),
        (TokenType.IDENTIFIER, "index"),
        (TokenType.EOF, ""),
    ]


def test_number_followed_by_word() -> None:
    """Test that numbers end where non-digits begin."""
    tokens = tokenize("127.0.0.1:80")

    assert (tokens[0].type, tokens[0].value, tokens[0].column) == (TokenType.NUMBER, "127", 1)
    assert (tokens[1].type, tokens[1].value, tokens[1].column) == (TokenType.IDENTIFIER, ".0.0.1:80", 4)
    assert tokens[0].end_column == tokens[1].column


def test_empty_source() -> None:
    assert kinds("") == [(TokenType.EOF, "")]
    assert kinds("   \n# only a comment\n") == [(TokenType.EOF, "")]


def test_lexer_is_iterable() -> None:
    tokens = list(Lexer("events { }"))

    assert tokens[-1].type == TokenType.EOF
    assert len(tokens) == 4


def test_sigil_ends_a_word() -> None:
    """A %env() reference glued to a word still lexes as its own tokens."""
    assert kinds('listen 127.0.0.1:%env("PORT");')[:5] == [
        (TokenType.IDENTIFIER, "listen"),
        (TokenType.NUMBER, "127"),
        (TokenType.IDENTIFIER, ".0.0.1:"),
        (TokenType.ENV, "%env"),
        (TokenType.LPAREN, "("),
    ]
    assert kinds("proxy_pass http://%upstream;")[1:3] == [
        (TokenType.IDENTIFIER, "http://"),
        (TokenType.VARIABLE, "%upstream"),
    ]


def test_trailing_percent_stays_in_word() -> None:
    """A percent sign not followed by a name is plain text."""
    tokens = tokenize("split_clients 50% one;")

    assert [(t.type, t.value) for t in tokens[1:3]] == [
        (TokenType.NUMBER, "50"),
        (TokenType.IDENTIFIER, "%"),
    ]
    assert tokens[1].end_column == tokens[2].column
