"""Lexer for the Monkey language."""

from __future__ import annotations

from typing import Iterator

from toolshed.monkey.token import Token, TokenType, lookup_ident

_SINGLE = {
    "+": TokenType.PLUS,
    "=": TokenType.ASSIGN,
    "-": TokenType.MINUS,
    "*": TokenType.ASTERISK,
    "/": TokenType.SLASH,
    "<": TokenType.LT,
    ">": TokenType.GT,
    ",": TokenType.COMMA,
    ";": TokenType.SEMICOLON,
    "!": TokenType.BANG,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
}
_WHITESPACE = frozenset(b" \t\n\r")


def _is_letter(byte: int) -> bool:
    return ord("a") <= byte <= ord("z") or ord("A") <= byte <= ord("Z") or byte == ord("_")


def _is_digit(byte: int) -> bool:
    return ord("0") <= byte <= ord("9")


class Lexer:
    """Turns source text into tokens, one byte at a time."""

    def __init__(self, text: str) -> None:
        self._data = text.encode("utf-8")
        self._pos = 0

    def _current(self) -> int:
        return self._data[self._pos] if self._pos < len(self._data) else 0

    def _advance(self) -> None:
        if self._pos < len(self._data):
            self._pos += 1

    def _read_while(self, predicate) -> str:
        start = self._pos
        while self._pos < len(self._data) and predicate(self._data[self._pos]):
            self._pos += 1
        return self._data[start:self._pos].decode("ascii")

    def next_token(self) -> Token:
        """Return the next token; EOF once the input is used up."""
        while self._current() in _WHITESPACE:
            self._advance()

        byte = self._current()
        if byte == 0:
            self._advance()
            return Token(TokenType.EOF, "")

        if _is_letter(byte):
            literal = self._read_while(_is_letter)
            return Token(lookup_ident(literal), literal)
        if _is_digit(byte):
            return Token(TokenType.INT, self._read_while(_is_digit))

        char = chr(byte)
        self._advance()
        return Token(_SINGLE.get(char, TokenType.ILLEGAL), char)

    def __iter__(self) -> Iterator[Token]:
        """Yield tokens up to and including the first EOF."""
        while True:
            token = self.next_token()
            yield token
            if token.type is TokenType.EOF:
                return