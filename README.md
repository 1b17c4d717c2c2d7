# toolshed

A collection of small, self-contained tools in one package. Everything runs on
the standard library alone.

## What is inside

| Module | What it does |
| --- | --- |
| `toolshed.lisp` | A small Lisp: `tokenize`, `parse`, `format_ast` (`parser`), `evaluate` (`evaluator`), `Frame` scopes (`frame`), built-ins and `new_frame` (`primitives`), and an interactive prompt (`repl`) |
| `toolshed.monkey` | A lexer for the Monkey language: `Lexer`, `Token`, `TokenType`, `lookup_ident` |
| `toolshed.spreadsheet` | Formula parsing (`formula`), evaluation (`interp`), values (`values`) and a `Sheet` with dependency tracking and dirty cells (`sheet`) |
| `toolshed.supervisor` | `Supervisor` runs `Job`s one at a time, reports each outcome as an `Event` and retries failures |
| `toolshed.eventheap` | `EventHeap`, a delay-ordered event list with `decrement` for countdown timers |
| `toolshed.lru` | `LRU`, a fixed-capacity cache, plus `left_shift` and `zip_strict` |
| `toolshed.intern` | `StringIntern` and the thread-safe `ConcurrentStringIntern`, built on `LRU` |
| `toolshed.mq` | A SQLite-backed message queue: `Exchange`, `Topic`, `MemoryStore`, `Publisher`, `Consumer` |
| `toolshed.namedlocks` | `RWLock` and `LockRegistry`, reader-writer locks looked up by name |
| `toolshed.sqlrepo` | `Repo`, table access for dataclass models over a DB-API connection using `$cN` named parameters |
| `toolshed.pgrepo` | `PgRepo`, prepared `$N` statements for a model, run through a pool with `fetch`, `fetchrow` and `execute` |
| `toolshed.mail` | `recent_messages`, which searches an IMAP inbox for the last day's mail |

## Installing

```
pip install .
pip install ".[test]"   # with pytest, to run the test suite
```

## Lisp

Start the interactive prompt:

```
toolshed-lisp
```

```
> (def square (lambda (x) (* x x)))
> (square 7)
```

Each line is parsed and its tree printed, then evaluated and the result
printed. A line starting with `;` is skipped; a blank line, end of input or
`(quit)` ends the session.

From Python:

```python
from toolshed.lisp.parser import tokenize, parse
from toolshed.lisp.primitives import new_frame
from toolshed.lisp.evaluator import evaluate

frame = new_frame()
node, _ = parse(tokenize("(+ 1 2 3)"))
result = evaluate(node, frame)
print(result.as_int())   # 6
```

Errors are raised as `LispError` and its subclasses `LispTypeError`,
`ArgumentCountError` and `ParseError`.

## Monkey lexer

```python
from toolshed.monkey.lexer import Lexer

for token in Lexer("let five = 5;"):
    print(token.type, token.literal)
```

Iterating a `Lexer` yields tokens up to and including the first `EOF`.

## Spreadsheet

```python
from toolshed.spreadsheet.sheet import Sheet

sheet = Sheet()
sheet.update("A1", "=1+2")
sheet.update("A2", "=A1+3")
sheet.update("A3", "=SUM(A1:A2)")
sheet.evaluate()

for ref, shown in sheet.cells():
    print(ref, shown)
```

Formulas that fail to evaluate show `#!INVALID`; a dependency cycle makes
`evaluate` raise `CyclicDependencyError`. After `evaluate`, `dirty()` yields
the formula cells whose value changed.

To see a worked session:

```
toolshed-sheet-demo             # prints the demo, then serves HTTP on port 8080
toolshed-sheet-demo --no-serve  # prints the demo and exits
toolshed-sheet-demo --port 9000
```

## Supervisor

```python
from toolshed.supervisor import Supervisor, Job

supervisor = Supervisor()
supervisor.use_event_handler(print)
supervisor.push(Job(name="hello", func=lambda ctx: None))
```

A job's function returns an exception to report an error, or `None`; an
exception it raises is reported with status `"panic"` and a stack trace.
`Supervisor.run` processes pushed jobs until `stop` is called; failed jobs
with retries left are pushed again every `retry_interval` seconds (5 by default).

## Message queue

```python
from toolshed.mq.exchange import Exchange

exchange = Exchange(directory="./_msq_")
exchange.run()
consumer = exchange.new_consumer("orders", "billing", lambda msg_id, body: print(body))
exchange.new_publisher().publish("orders", b"hello")
```

A channel reading for the first time starts after the newest message. A
handler that raises is retried up to `max_retries` times. The example command
publishes one message and keeps running for a while:

```
toolshed-mq-example --directory ./_msq_ --wait 10
```

## Named locks

```
toolshed-locks-demo --init-delay 0.1
```

runs several threads taking and releasing read and write locks on the names
`a` to `d` through a `LockRegistry`.

## Mail

```
IMAP_USERNAME=user@example.com IMAP_PASSWORD=password toolshed-mail --host imap.example.com --port 993
```

logs the inbox size, the UIDs of messages from the last 24 hours and, when
there are any, the sender, recipients, date and subject of the message with UID 1.

## What it does not do

- The HTTP server started by `toolshed-sheet-demo` answers every request with
  an empty `200` response; it serves no sheet data.
- `Exchange` does not reopen topics recorded by an earlier run; topics exist
  once created, published to or consumed from.
- `toolshed-mail` fetches only the message with UID 1, not every message the
  search found, and cannot send mail.
- `PgRepo` brings no database driver; it needs a pool object you supply.