"""Rendering of raw mongosh output for the console."""
from __future__ import annotations

import enum
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from .models import UserRecord

logger = logging.getLogger("overleaf_admin.formatting")

EMAIL_WIDTH = 40
ROLE_WIDTH = 10
STATUS_WIDTH = 15
LAST_ACTIVE_RULE = 25

VERIFIED = "✓ Verified"
UNVERIFIED = "✗ Unverified"
NEVER = "Never"

_EMAIL_FIELD = re.compile(r'"email"\s*:\s*"([^"]*)"')
_ADMIN_TRUE = re.compile(r'"isAdmin"\s*:\s*true\b')


class FormatMode(enum.Enum):
    TABLE = "table"
    DETAIL = "detail"


@dataclass
class Rendering:
    """Lines ready for display, plus whether the fallback path produced them."""

    lines: List[str] = field(default_factory=list)
    degraded: bool = False

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


def _row(email: str, role: str, status: str, last_active: str) -> str:
    return f"{email:<{EMAIL_WIDTH}} {role:<{ROLE_WIDTH}} {status:<{STATUS_WIDTH}} {last_active}"


TABLE_HEADER = (
    _row("EMAIL", "ROLE", "STATUS", "LAST ACTIVE"),
    _row("-" * EMAIL_WIDTH, "-" * ROLE_WIDTH, "-" * STATUS_WIDTH, "-" * LAST_ACTIVE_RULE),
)


def parse_user_list(raw: str) -> List[UserRecord]:
    """Decode the EJSON array produced by the listing query.

    Raises :class:`ValueError` when the output is not a JSON array of documents.
    """

    payload = json.loads(raw.strip())
    if not isinstance(payload, list):
        raise ValueError("Expected a JSON array of user documents")
    records = []
    for document in payload:
        if not isinstance(document, dict):
            raise ValueError("Expected every listed entry to be a JSON object")
        records.append(UserRecord.from_document(document))
    return records


def format_user_row(record: UserRecord) -> str:
    status = VERIFIED if record.verified else UNVERIFIED
    if record.last_active is None:
        last_active = NEVER
    else:
        last_active = record.last_active.strftime("%Y-%m-%d %H:%M")
    return _row(record.email, record.role, status, last_active)


def extract_emails(raw: str) -> List[str]:
    return _EMAIL_FIELD.findall(raw or "")


class ResultFormatter:
    """Turns raw command output into display lines.

    With ``structured`` disabled, or whenever the output cannot be decoded,
    listings degrade to bare email addresses and detail views to the raw text.
    """

    def __init__(self, *, structured: bool = True) -> None:
        self._structured = structured

    def format(self, raw: str, mode: FormatMode) -> Rendering:
        if mode is FormatMode.TABLE:
            return self.table(raw)
        return self.detail(raw)

    def table(self, raw: str) -> Rendering:
        if self._structured:
            try:
                records = parse_user_list(raw)
            except ValueError as exc:
                logger.debug("Falling back to plain email listing: %s", exc)
            else:
                return Rendering(lines=self.table_lines(records))
        return Rendering(lines=extract_emails(raw), degraded=True)

    @staticmethod
    def table_lines(records: Iterable[UserRecord]) -> List[str]:
        lines = list(TABLE_HEADER)
        lines.extend(format_user_row(record) for record in records)
        return lines

    def detail(self, raw: str) -> Rendering:
        text = (raw or "").strip()
        if self._structured:
            try:
                document = json.loads(text)
            except ValueError as exc:
                logger.debug("Showing raw user document: %s", exc)
            else:
                return Rendering(lines=json.dumps(document, indent=2, ensure_ascii=False).splitlines())
        return Rendering(lines=text.splitlines(), degraded=True)

    def admin_flag(self, raw: str) -> Tuple[Optional[bool], bool]:
        """Return the admin flag from a projected document and whether it was guessed.

        ``None`` means the lookup matched no document.
        """
        text = (raw or "").strip()
        if self._structured:
            try:
                document = json.loads(text)
            except ValueError as exc:
                logger.debug("Scanning raw output for the admin flag: %s", exc)
            else:
                if document is None:
                    return None, False
                if isinstance(document, dict):
                    return bool(document.get("isAdmin")), False
        if text == "null":
            return None, True
        return bool(_ADMIN_TRUE.search(text)), True

    @staticmethod
    def stats(total: int, admins: int, verified: int) -> Rendering:
        rows = (
            ("Total users:", total),
            ("Administrators:", admins),
            ("Verified emails:", verified),
            ("Unverified:", total - verified),
        )
        return Rendering(lines=[f"{label:<18}{value}" for label, value in rows])


__all__ = [
    "FormatMode",
    "Rendering",
    "ResultFormatter",
    "TABLE_HEADER",
    "extract_emails",
    "format_user_row",
    "parse_user_list",
]
