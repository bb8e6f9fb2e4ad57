"""Builders for mongosh expressions and maintenance script invocations.

Every email that ends up in an expression is encoded as a JSON string
literal, which mongosh parses as an ordinary JavaScript string.  Emails
passed to the application scripts are shell-quoted.
"""
from __future__ import annotations

import json
import re
import shlex

from .config import ClusterConfig


_CONTROL_OR_SPACE = re.compile(r"[\s\x00-\x1f\x7f]")

LIST_PROJECTION = '{email: 1, isAdmin: 1, lastActive: 1, "emails.confirmedAt": 1, _id: 0}'

CREATE_USER_SCRIPT = "modules/server-ce-scripts/scripts/create-user.mjs"
DELETE_USER_SCRIPT = "modules/server-ce-scripts/scripts/delete-user.mjs"


class InvalidEmailError(ValueError):
    """Raised when an email cannot safely be used in a remote command."""


def validate_email(email: str | None) -> str:
    cleaned = (email or "").strip()
    if not cleaned:
        raise InvalidEmailError("No email provided")
    if _CONTROL_OR_SPACE.search(cleaned):
        raise InvalidEmailError(f"Email {cleaned!r} contains whitespace or control characters")
    if "@" not in cleaned:
        raise InvalidEmailError(f"Email {cleaned!r} is not a valid address")
    return cleaned


def js_string(value: str) -> str:
    """Encode *value* as a JavaScript string literal."""

    return json.dumps(value)


class QueryBuilder:
    """Produces expressions for the users collection of one database."""

    def __init__(self, config: ClusterConfig) -> None:
        self._config = config

    @property
    def collection(self) -> str:
        return f"db.getSiblingDB({js_string(self._config.database_name)}).getCollection({js_string(self._config.collection)})"

    def _by_email(self, email: str) -> str:
        return "{email: " + js_string(validate_email(email)) + "}"

    def count_all(self) -> str:
        return f"{self.collection}.countDocuments()"

    def count_admins(self) -> str:
        return f"{self.collection}.countDocuments({{isAdmin: true}})"

    def count_verified(self) -> str:
        return f'{self.collection}.countDocuments({{"emails.confirmedAt": {{$exists: true}}}})'

    def count_by_email(self, email: str) -> str:
        return f"{self.collection}.countDocuments({self._by_email(email)})"

    def list_users(self) -> str:
        return f"EJSON.stringify({self.collection}.find({{}}, {LIST_PROJECTION}).toArray())"

    def find_one(self, email: str) -> str:
        return f"EJSON.stringify({self.collection}.findOne({self._by_email(email)}))"

    def admin_flag(self, email: str) -> str:
        return f"EJSON.stringify({self.collection}.findOne({self._by_email(email)}, {{isAdmin: 1, _id: 0}}))"

    def set_admin(self, email: str, is_admin: bool) -> str:
        flag = "true" if is_admin else "false"
        return f"{self.collection}.updateOne({self._by_email(email)}, {{$set: {{isAdmin: {flag}}}}})"

    def confirm_email(self, email: str) -> str:
        return f'{self.collection}.updateOne({self._by_email(email)}, {{$set: {{"emails.0.confirmedAt": new Date()}}}})'

    def _script(self, script: str, flag: str | None, email: str) -> str:
        parts = ["node", script]
        if flag:
            parts.append(flag)
        parts.append(f"--email={validate_email(email)}")
        return f"cd {shlex.quote(self._config.web_root)} && " + " ".join(shlex.quote(part) for part in parts)

    def create_user_script(self, email: str, *, admin: bool = False) -> str:
        return self._script(CREATE_USER_SCRIPT, "--admin" if admin else None, email)

    def delete_user_script(self, email: str, *, skip_email: bool = False) -> str:
        return self._script(DELETE_USER_SCRIPT, "--skip-email" if skip_email else None, email)


__all__ = ["InvalidEmailError", "QueryBuilder", "js_string", "validate_email"]
