"""NoteG lexer: converts source text into a flat token stream."""

from __future__ import annotations

from noteg.tokens import (
    KEYWORDS,
    QUOTES,
    SINGLE_CHAR_TOKENS,
    TWO_CHAR_TOKENS,
    Token,
    TokenType,
    is_digit,
    is_ident_char,
    is_ident_start,
)


class Lexer:
    """Tokenize NoteG source text into a list of Token objects.

    A Lexer is single-use: build a fresh one for every source text.
    """

    def __init__(self, source: str) -> None:
        self._source = source
        self._pos = 0
        self._line = 1
        self._col = 1
        # Start of the token currently being scanned
        self._start_line = 1
        self._start_col = 1

    def tokenize(self) -> list[Token]:
        """Tokenize the full source and return the token list, ending in EOF."""
        tokens: list[Token] = []
        while True:
            tok = self._next_token()
            if tok.type == TokenType.EOF:
                break
            if tok.type != TokenType.NEWLINE:
                tokens.append(tok)
        tokens.append(tok)
        return tokens

    # ------------------------------------------------------------------
    # Position helpers
    # ------------------------------------------------------------------

    def _at_end(self) -> bool:
        return self._pos >= len(self._source)

    def _peek(self, offset: int = 0) -> str:
        idx = self._pos + offset
        if idx < len(self._source):
            return self._source[idx]
        return ""

    def _advance(self) -> str:
        ch = self._source[self._pos]
        self._pos += 1
        if ch == "\n":
            self._line += 1
            self._col = 1
        else:
            self._col += 1
        return ch

    def _mark(self) -> None:
        self._start_line = self._line
        self._start_col = self._col

    def _make(self, tt: TokenType, value: str) -> Token:
        return Token(tt, value, self._start_line, self._start_col)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _next_token(self) -> Token:
        self._skip_trivia()
        self._mark()

        if self._at_end():
            return self._make(TokenType.EOF, "")

        ch = self._advance()

        if ch == "\n":
            return self._make(TokenType.NEWLINE, ch)

        # Template markers win over single braces
        if ch == "{" and self._peek() == "{":
            self._advance()
            return self._make(TokenType.TEMPLATE_START, "{{")
        if ch == "}" and self._peek() == "}":
            self._advance()
            return self._make(TokenType.TEMPLATE_END, "}}")

        if ch in SINGLE_CHAR_TOKENS:
            return self._make(SINGLE_CHAR_TOKENS[ch], ch)

        if ch in TWO_CHAR_TOKENS:
            second, pair_type, single_type = TWO_CHAR_TOKENS[ch]
            if self._peek() == second:
                self._advance()
                return self._make(pair_type, ch + second)
            return self._make(single_type, ch)

        if ch == "/":
            return self._make(TokenType.SLASH, ch)

        if ch in QUOTES:
            return self._lex_string(ch)

        if is_digit(ch):
            return self._lex_number(ch)

        if is_ident_start(ch):
            return self._lex_identifier(ch)

        return self._make(TokenType.ERROR, ch)

    def _skip_trivia(self) -> None:
        """Skip spaces, tabs, carriage returns and // line comments."""
        while not self._at_end():
            ch = self._peek()
            if ch in " \t\r":
                self._advance()
            elif ch == "/" and self._peek(1) == "/":
                while not self._at_end() and self._peek() != "\n":
                    self._advance()
            else:
                break

    # ------------------------------------------------------------------
    # Literals
    # ------------------------------------------------------------------

    def _lex_string(self, quote: str) -> Token:
        start = self._pos - 1
        chars: list[str] = []
        while not self._at_end() and self._peek() != quote:
            if self._peek() == "\\" and self._peek(1) == quote:
                self._advance()  # drop the backslash, keep the quote
            chars.append(self._advance())

        if self._at_end():
            return self._make(TokenType.ERROR, self._source[start:])

        self._advance()  # closing quote
        return self._make(TokenType.STRING, "".join(chars))

    def _lex_number(self, first: str) -> Token:
        chars = [first]
        while is_digit(self._peek()):
            chars.append(self._advance())

        if self._peek() == "." and is_digit(self._peek(1)):
            chars.append(self._advance())
            while is_digit(self._peek()):
                chars.append(self._advance())

        return self._make(TokenType.NUMBER, "".join(chars))

    def _lex_identifier(self, first: str) -> Token:
        chars = [first]
        while is_ident_char(self._peek()):
            chars.append(self._advance())
        text = "".join(chars)
        return self._make(KEYWORDS.get(text, TokenType.IDENTIFIER), text)


def tokenize(source: str) -> list[Token]:
    """Convenience function: tokenize source text and return token list."""
    return Lexer(source).tokenize()
