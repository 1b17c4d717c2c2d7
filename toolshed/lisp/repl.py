"""Interactive read-eval-print loop for the Lisp interpreter."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, TextIO

from toolshed.lisp.evaluator import evaluate
from toolshed.lisp.nodes import LispError
from toolshed.lisp.parser import ParseError, format_ast, parse, tokenize
from toolshed.lisp.primitives import new_frame

logger = logging.getLogger(__name__)


def run(stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None) -> None:
    """Read lines until end of input, a blank line or (quit), printing each result."""
    stdin = sys.stdin if stdin is None else stdin
    stdout = sys.stdout if stdout is None else stdout
    frame = new_frame()

    while True:
        stdout.write("> ")
        stdout.flush()
        raw = stdin.readline()
        if raw == "":
            return
        line = raw.rstrip("\r\n")

        if line.startswith(";"):
            continue

        try:
            ast, _ = parse(tokenize(line))
        except ParseError as exc:
            print("error:", exc, file=stdout)
            if not line.strip():
                return
            continue

        print("\nAST:", file=stdout)
        stdout.write(format_ast(ast, ""))
        print(file=stdout)

        try:
            result = evaluate(ast, frame)
        except LispError as exc:
            logger.error("%s", exc)
            stdout.write(format_ast(exc.node, ""))
            print("\n", file=stdout)
            continue

        if result is None:
            break

        stdout.write(format_ast(result, ""))
        print("", file=stdout)


def main(argv: Optional[list[str]] = None) -> int:
    argparse.ArgumentParser(description="Interactive Lisp interpreter.").parse_args(argv)
    logging.basicConfig(
        format="%(asctime)s %(filename)s:%(lineno)d: %(message)s",
        datefmt="%H:%M:%S",
    )
    run(sys.stdin, sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())