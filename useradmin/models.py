"""Domain models for the user administration console."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional


class Operation(enum.Enum):
    """Actions offered by the console, keyed by their menu number."""

    LIST = "1"
    VIEW = "2"
    CREATE = "3"
    DELETE = "4"
    TOGGLE_ADMIN = "5"
    VERIFY_EMAIL = "6"
    STATS = "7"
    EXIT = "8"

    @classmethod
    def from_choice(cls, choice: str) -> Optional["Operation"]:
        try:
            return cls(choice.strip())
        except ValueError:
            return None


@dataclass
class UserCommand:
    """A single requested action and whatever parameters are already known.

    Missing values are prompted for when the command runs.
    """

    operation: Operation
    email: Optional[str] = None
    admin: Optional[bool] = None
    skip_email: Optional[bool] = None
    assume_yes: bool = False


def parse_ejson_date(value: Any) -> Optional[datetime]:
    """Convert an EJSON date (relaxed or canonical) into an aware datetime."""

    if value is None:
        return None
    if isinstance(value, Mapping):
        if "$date" not in value:
            return None
        value = value["$date"]
        if isinstance(value, Mapping):
            value = value.get("$numberLong")
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").isdigit():
            return datetime.fromtimestamp(int(text) / 1000, tz=timezone.utc)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    return None


@dataclass(frozen=True)
class UserRecord:
    """Represents a user document as read from the remote users collection."""

    email: str
    is_admin: bool
    last_active: Optional[datetime]
    email_confirmed_at: Optional[datetime]
    verified: bool = False

    @property
    def role(self) -> str:
        return "ADMIN" if self.is_admin else "USER"

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "UserRecord":
        emails = document.get("emails") or []
        first = emails[0] if isinstance(emails, list) and emails else {}
        confirmed = first.get("confirmedAt") if isinstance(first, Mapping) else None
        return cls(
            email=str(document.get("email", "")),
            is_admin=bool(document.get("isAdmin")),
            last_active=parse_ejson_date(document.get("lastActive")),
            email_confirmed_at=parse_ejson_date(confirmed),
            verified=bool(confirmed),
        )


__all__ = ["Operation", "UserCommand", "UserRecord", "parse_ejson_date"]
