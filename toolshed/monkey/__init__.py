"""Tokens and a lexer for the Monkey language."""