"""A small Lisp interpreter with a parser, scopes, primitives and an interactive prompt."""