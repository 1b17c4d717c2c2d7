[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "toolshed"
version = "0.1.0"
description = "Small standard-library tools: a Lisp interpreter, a Monkey lexer, a spreadsheet engine, a job supervisor, a SQLite message queue, named locks, SQL repositories and data structures."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "lisp",
    "interpreter",
    "lexer",
    "spreadsheet",
    "supervisor",
    "message-queue",
    "lru",
    "rwlock",
    "repository",
    "imap",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries",
    "Topic :: Software Development :: Interpreters",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
toolshed-lisp = "toolshed.lisp.repl:main"
toolshed-sheet-demo = "toolshed.spreadsheet.demo:main"
toolshed-mq-example = "toolshed.mq.example:main"
toolshed-locks-demo = "toolshed.namedlocks:main"
toolshed-mail = "toolshed.mail:main"

[tool.hatch.build.targets.wheel]
packages = ["toolshed"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
