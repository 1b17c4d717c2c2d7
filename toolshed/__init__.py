"""Small tools: interpreters, a spreadsheet engine, a job supervisor, a message queue, locks, SQL repositories and data structures."""

__version__ = "0.1.0"