"""A scripted walk through the spreadsheet, followed by an idle HTTP endpoint."""

from __future__ import annotations

import argparse
import sys
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional, TextIO

from toolshed.spreadsheet.sheet import Sheet


def _show(sheet: Sheet, out: TextIO, dirty: bool = True) -> None:
    for ref, text in sheet.cells():
        print(ref, text, file=out)
    if dirty:
        for ref in sheet.dirty():
            print("dirty", ref, file=out)


def run_demo(out: Optional[TextIO] = None) -> None:
    """Fill and evaluate a few sheets, printing cells and changed cells to ``out``."""
    out = sys.stdout if out is None else out
    sheet = Sheet()

    sheet.update("A1", "=1+2")
    sheet.update("A2", "=A1+3")
    sheet.update("B1", "=SUM(NORM(0,1),NORM(0,1))")
    sheet.update("A3", "=SUM(A1:A2)")
    sheet.update("D1", "=SUM(A1:B5)")
    sheet.update("C1", "hello")
    sheet.update("C2", "world")
    sheet.update("C3", "goodbye")
    sheet.update("E1", "=E()")
    sheet.update("E2", "=PI()")
    sheet.evaluate()
    _show(sheet, out)

    sheet.reset()
    sheet.update("A1", "Name")
    sheet.update("B1", "Score")
    sheet.update("A2", "Alice")
    sheet.update("A3", "Bob")
    sheet.update("A4", "Charlie")
    sheet.update("B2", "85")
    sheet.update("B3", "92")
    sheet.update("B4", "78")
    sheet.update("D1", "Charlie")
    sheet.update("D2", "=VLOOKUP(D1,A2:B4,2)")
    sheet.evaluate()
    _show(sheet, out)

    sheet.reset()
    sheet.append_column("A", ["1", "2", "3"])
    sheet.update("B1", "=NOW()")
    sheet.update("C1", "=1>2")
    sheet.update("C2", "=1<2")
    sheet.update("C3", "=RAND()")
    sheet.update("C4", "=ABS(C3)")
    sheet.evaluate()
    _show(sheet, out, dirty=False)

    sheet.reset()
    sheet.update("A1", "=BINOM.INV()")
    sheet.update("B1", "=NOW()")
    sheet.evaluate()
    _show(sheet, out)
    sheet.evaluate()
    _show(sheet, out)


class _EmptyHandler(BaseHTTPRequestHandler):
    def _respond(self) -> None:
        self.send_response(200)
        self.send_header("Content-Length", "0")
        self.end_headers()

    do_GET = do_POST = do_PUT = do_DELETE = do_HEAD = _respond

    def log_message(self, format: str, *args: object) -> None:
        pass


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run the spreadsheet demo.")
    parser.add_argument("--port", type=int, default=8080)
    parser.add_argument("--no-serve", action="store_true", help="exit after the demo")
    options = parser.parse_args(argv)

    run_demo(sys.stdout)

    if not options.no_serve:
        try:
            with ThreadingHTTPServer(("", options.port), _EmptyHandler) as server:
                server.serve_forever()
        except KeyboardInterrupt:
            pass
        except OSError as exc:
            print(f"server: {exc}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())