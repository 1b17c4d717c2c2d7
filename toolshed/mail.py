"""Lists messages that arrived in an IMAP inbox during the last day."""

from __future__ import annotations

import argparse
import imaplib
import logging
import os
import re
import sys
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from email import policy
from email.parser import BytesParser
from typing import Any, Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_HOST = "imap.gmail.com"
DEFAULT_PORT = 993

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
_UID_RE = re.compile(rb"\bUID (\d+)")
_FLAGS_RE = re.compile(rb"\bFLAGS \(([^)]*)\)")
_FETCH_ITEMS = "(UID FLAGS BODY[])"


@dataclass(frozen=True)
class MessageSummary:
    uid: int
    date: Optional[datetime]
    sender: tuple[str, ...]
    to: tuple[str, ...]
    subject: str
    flags: tuple[str, ...] = ()


def _check(typ: str, data: Any, what: str) -> Any:
    if typ != "OK":
        raise imaplib.IMAP4.error(f"{what} failed: {data!r}")
    return data


def _imap_date(moment: datetime) -> str:
    return f"{moment.day:02d}-{_MONTHS[moment.month - 1]}-{moment.year}"


def _addresses(header: Any) -> tuple[str, ...]:
    if header is None:
        return ()
    return tuple(str(address) for address in getattr(header, "addresses", ()))


def _summaries(data: Sequence[Any]) -> list[MessageSummary]:
    parser = BytesParser(policy=policy.default)
    result = []
    for part in data:
        if not isinstance(part, tuple) or len(part) < 2:
            continue
        meta, body = part[0], part[1]
        uid_match = _UID_RE.search(meta)
        flags_match = _FLAGS_RE.search(meta)
        message = parser.parsebytes(body)
        result.append(
            MessageSummary(
                uid=int(uid_match.group(1)) if uid_match else 0,
                date=getattr(message["Date"], "datetime", None),
                sender=_addresses(message["From"]),
                to=_addresses(message["To"]),
                subject=str(message["Subject"] or ""),
                flags=tuple(flags_match.group(1).decode("ascii", "replace").split())
                if flags_match
                else (),
            )
        )
    return result


def recent_messages(client: Any, now: Optional[datetime] = None) -> list[MessageSummary]:
    """Search INBOX for mail of the last 24 hours; if any, fetch the message with UID 1.

    ``client`` is a logged-in ``imaplib.IMAP4``. Returns an empty list when the
    search finds nothing.
    """
    now = datetime.now(timezone.utc) if now is None else now

    selected = _check(*client.select("INBOX"), "select")
    count = selected[0].decode() if selected and selected[0] else "0"
    logger.info("Num Messages: %s", count)

    since = _imap_date(now - timedelta(hours=24))
    found = _check(*client.uid("SEARCH", "SINCE", since), "search")
    uids = [int(token) for chunk in found if chunk for token in chunk.split()]
    if not uids:
        logger.info("No messages found")
        return []
    logger.info("%s", uids)

    fetched = _check(*client.uid("FETCH", "1", _FETCH_ITEMS), "fetch")
    return _summaries(fetched)


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="List recent messages of an IMAP inbox.")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--username", default=os.environ.get("IMAP_USERNAME", ""))
    options = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")

    password = os.environ.get("IMAP_PASSWORD", "")
    credentials = f"\0{options.username}\0{password}".encode()

    try:
        with imaplib.IMAP4_SSL(options.host, options.port) as client:
            client.authenticate("PLAIN", lambda _challenge: credentials)
            for summary in recent_messages(client):
                logger.info("UID: %s", summary.uid)
                logger.info("Date: %s", summary.date)
                logger.info("From: %s", list(summary.sender))
                logger.info("To: %s", list(summary.to))
                logger.info("Subject: %s", summary.subject)
    except (imaplib.IMAP4.error, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())