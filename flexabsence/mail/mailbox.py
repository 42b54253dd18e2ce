from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from email import policy
from email.message import EmailMessage
from email.parser import BytesParser
from email.utils import parseaddr, parsedate_to_datetime
from pathlib import Path

from ..models.errors import FlexAbsenceError, NoAttachment

"""Mail search and attachment retrieval over a directory of ``.eml`` files.

Report emails are exported (or delivered by a mail rule) into one directory. A message's
ID is its file stem. Messages sharing a subject, ignoring leading ``Re:``/``Fwd:``
prefixes, form a thread.
"""

__all__ = [
    "Attachment",
    "EmlDirectoryMailbox",
    "MailMessage",
    "MailThread",
    "MailboxError",
    "spreadsheet_attachments",
]

logger = logging.getLogger(__name__)

_REPLY_PREFIX = re.compile(r"^\s*((re|fwd?|aw)\s*:\s*)+", re.IGNORECASE)


class MailboxError(FlexAbsenceError):
    """Raised when the mailbox directory or a message cannot be read."""


@dataclass(frozen=True)
class MailMessage:
    message_id: str
    subject: str
    sender: str  # bare address, lower-cased
    date: datetime  # timezone-aware; file mtime when the Date header is unusable
    path: Path


@dataclass(frozen=True)
class MailThread:
    subject: str
    messages: list[MailMessage] = field(default_factory=list)  # oldest first

    @property
    def latest(self) -> MailMessage:
        return self.messages[-1]


@dataclass(frozen=True)
class Attachment:
    filename: str
    mime_type: str
    payload: bytes


def _thread_key(subject: str) -> str:
    return _REPLY_PREFIX.sub("", subject).strip().lower()


def _message_date(msg: EmailMessage, path: Path) -> datetime:
    raw = msg.get("Date")
    if raw:
        try:
            dt = parsedate_to_datetime(str(raw))
        except (TypeError, ValueError):
            dt = None
        if dt is not None:
            return dt if dt.tzinfo is not None else dt.replace(tzinfo=UTC)
    return datetime.fromtimestamp(path.stat().st_mtime, tz=UTC)


class EmlDirectoryMailbox:
    """Read-only mailbox over ``<directory>/*.eml``."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def _parse(self, path: Path, headers_only: bool) -> EmailMessage:
        try:
            with path.open("rb") as fp:
                return BytesParser(policy=policy.default).parse(fp, headersonly=headers_only)  # type: ignore[return-value]
        except OSError as e:
            raise MailboxError(f"cannot read message {path.name}: {e}") from e

    def messages(self) -> list[MailMessage]:
        if not self.directory.is_dir():
            raise MailboxError(f"mailbox directory not found: {self.directory}")
        found: list[MailMessage] = []
        for path in sorted(self.directory.glob("*.eml")):
            msg = self._parse(path, headers_only=True)
            found.append(
                MailMessage(
                    message_id=path.stem,
                    subject=str(msg.get("Subject", "")),
                    sender=parseaddr(str(msg.get("From", "")))[1].lower(),
                    date=_message_date(msg, path),
                    path=path,
                )
            )
        return found

    def search(self, from_address: str | None, subject: str, max_results: int = 1) -> list[MailThread]:
        """Threads whose subject contains ``subject``, most recent thread first.

        When ``from_address`` is given only messages sent from that address match.
        """
        sender = (from_address or "").strip().lower()
        threads: dict[str, list[MailMessage]] = {}
        for m in self.messages():
            if sender and m.sender != sender:
                continue
            if subject not in m.subject:
                continue
            threads.setdefault(_thread_key(m.subject), []).append(m)

        result = [
            MailThread(subject=msgs[0].subject, messages=sorted(msgs, key=lambda m: m.date))
            for msgs in threads.values()
        ]
        result.sort(key=lambda t: t.latest.date, reverse=True)
        logger.debug(
            "mail search from=%s subject=%r -> %d thread(s)", sender or "*", subject, len(result)
        )
        return result[:max_results]

    def get_attachments(self, message_id: str) -> list[Attachment]:
        path = self.directory / f"{message_id}.eml"
        if not path.exists():
            raise MailboxError(f"message not found with ID: {message_id}")
        msg = self._parse(path, headers_only=False)
        attachments = []
        for part in msg.iter_attachments():
            attachments.append(
                Attachment(
                    filename=part.get_filename() or "",
                    mime_type=part.get_content_type(),
                    payload=part.get_payload(decode=True) or b"",
                )
            )
        return attachments


def spreadsheet_attachments(
    attachments: Iterable[Attachment],
    extensions: Iterable[str] = (".xlsx",),
    mime_types: Iterable[str] = (
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ),
    message_id: str = "",
) -> list[Attachment]:
    """Keep attachments with a spreadsheet MIME type or file extension.

    Raises
    ------
    NoAttachment: nothing matched.
    """
    exts = tuple(e.lower() for e in extensions)
    mimes = set(mime_types)
    matched = [
        a for a in attachments
        if a.mime_type in mimes or (exts and a.filename.lower().endswith(exts))
    ]
    if not matched:
        raise NoAttachment(f"no Excel attachments found in message {message_id}".rstrip())
    for a in matched:
        logger.debug("found Excel attachment: %s", a.filename)
    return matched
