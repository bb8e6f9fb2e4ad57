"""User administration actions run against the Overleaf deployment."""
from __future__ import annotations

import logging
import re
from typing import Optional

from .console import ConsoleIO
from .formatting import FormatMode, Rendering, ResultFormatter
from .kubectl import CommandResult, KubectlExecutor, RemoteCommandError
from .models import Operation, UserCommand
from .queries import InvalidEmailError, QueryBuilder, validate_email

logger = logging.getLogger("overleaf_admin.actions")

_NO_MATCH = re.compile(r"matchedCount['\"]?\s*:\s*0\b")

DEGRADED_WARNING = "Warning: user data could not be parsed as JSON; output is reduced."


class UserNotFoundError(LookupError):
    """Raised when an action targets an email with no matching user."""

    def __init__(self, email: str) -> None:
        super().__init__(f"User {email} not found")
        self.email = email


class UserManager:
    """Runs list/view/create/delete/toggle/verify/stats against the cluster.

    Every action returns ``True`` when it completed and ``False`` when it
    was cancelled or the remote command failed.  Lookup and validation
    errors are raised; :meth:`run` reports them on the console instead.
    """

    def __init__(
        self,
        executor: KubectlExecutor,
        *,
        io: Optional[ConsoleIO] = None,
        queries: Optional[QueryBuilder] = None,
        formatter: Optional[ResultFormatter] = None,
    ) -> None:
        config = executor.config
        self._executor = executor
        self._io = io or ConsoleIO()
        self._queries = queries or QueryBuilder(config)
        self._formatter = formatter or ResultFormatter(structured=config.structured_output)

    def run(self, command: UserCommand) -> bool:
        operation = command.operation
        try:
            if operation is Operation.LIST:
                return self.list_users()
            if operation is Operation.VIEW:
                return self.view_user(command.email)
            if operation is Operation.CREATE:
                return self.create_user(command.email, admin=command.admin, assume_yes=command.assume_yes)
            if operation is Operation.DELETE:
                return self.delete_user(command.email, skip_email=command.skip_email, assume_yes=command.assume_yes)
            if operation is Operation.TOGGLE_ADMIN:
                return self.toggle_admin(command.email, assume_yes=command.assume_yes)
            if operation is Operation.VERIFY_EMAIL:
                return self.verify_email(command.email, assume_yes=command.assume_yes)
            if operation is Operation.STATS:
                return self.show_stats()
        except (InvalidEmailError, UserNotFoundError, RemoteCommandError) as exc:
            self._io.error(f"✗ {exc}")
            return False
        raise ValueError(f"Unsupported operation: {operation}")

    # Remote helpers

    def _count(self, expression: str) -> int:
        result = self._executor.database(expression)
        if not result.succeeded:
            raise RemoteCommandError("Database query failed", result)
        try:
            return int(result.output)
        except ValueError as exc:
            raise RemoteCommandError("Database returned an unexpected count", result) from exc

    def _require_user(self, email: str) -> None:
        if self._count(self._queries.count_by_email(email)) == 0:
            raise UserNotFoundError(email)

    def _show(self, rendering: Rendering) -> None:
        if rendering.degraded:
            self._io.warning(DEGRADED_WARNING)
        self._io.lines(rendering.lines)

    def _show_output(self, result: CommandResult) -> None:
        for stream in (result.stdout, result.stderr):
            text = stream.rstrip()
            if text:
                self._io.line(text)

    def _prompt_email(self, prompt: str, *, show_list: bool = False) -> Optional[str]:
        if show_list:
            self._io.line()
            try:
                self.list_users()
            except RemoteCommandError as exc:
                self._io.error(f"✗ {exc}")
            self._io.line()
        email = self._io.ask(prompt)
        if not email:
            self._io.error("No email provided. Aborting.")
            return None
        return email

    # Actions

    def list_users(self) -> bool:
        self._io.header("All Users")
        self._io.line("Fetching users...")

        result = self._executor.database(self._queries.list_users())
        if not result.succeeded:
            raise RemoteCommandError("Failed to fetch users", result)

        self._show(self._formatter.format(result.stdout, FormatMode.TABLE))
        return True

    def view_user(self, email: Optional[str] = None) -> bool:
        if email is None:
            email = self._prompt_email("Enter user email: ")
            if email is None:
                return False
        email = validate_email(email)

        self._io.header(f"User Details: {email}")
        result = self._executor.database(self._queries.find_one(email))
        if not result.succeeded:
            raise RemoteCommandError("Failed to fetch user details", result)
        if result.output == "null":
            raise UserNotFoundError(email)

        self._show(self._formatter.format(result.stdout, FormatMode.DETAIL))
        return True

    def create_user(self, email: Optional[str] = None, *, admin: Optional[bool] = None, assume_yes: bool = False) -> bool:
        if email is None:
            email = self._prompt_email("Enter email address: ")
            if email is None:
                return False
        email = validate_email(email)

        if admin is None:
            admin = False if assume_yes else self._io.confirm("Make this user an admin? (y/n): ")

        self._io.header(f"Creating User: {email}")
        kind = "an admin" if admin else "a regular"
        if not assume_yes and not self._io.confirm(f"Create {kind} account for {email}? (y/n): "):
            self._io.warning("User creation cancelled.")
            return False

        result = self._executor.application(self._queries.create_user_script(email, admin=admin))
        self._show_output(result)
        if not result.succeeded:
            self._io.error("✗ Failed to create user")
            return False

        logger.info("Created user %s (admin=%s)", email, admin)
        self._io.success("✓ User created successfully!")
        return True

    def delete_user(
        self,
        email: Optional[str] = None,
        *,
        skip_email: Optional[bool] = None,
        assume_yes: bool = False,
    ) -> bool:
        if email is None:
            email = self._prompt_email("Enter email of user to delete: ", show_list=True)
            if email is None:
                return False
        email = validate_email(email)
        self._require_user(email)

        self._io.header(f"Delete User: {email}")
        self._io.error("⚠️  WARNING: This will delete the user AND all their projects!")
        self._io.line()
        if not assume_yes and not self._io.confirm(
            f"Are you sure you want to delete {email}? (type 'yes' to confirm): ", accept=("yes",)
        ):
            self._io.warning("Deletion cancelled.")
            return False

        if skip_email is None:
            skip_email = False if assume_yes else self._io.confirm("Skip sending notification email? (y/n): ")

        self._io.line()
        self._io.warning("Deleting user...")
        result = self._executor.application(self._queries.delete_user_script(email, skip_email=skip_email))
        self._show_output(result)
        if not result.succeeded:
            self._io.error("✗ Failed to delete user")
            return False

        logger.info("Deleted user %s (skip_email=%s)", email, skip_email)
        self._io.success("✓ User deleted successfully!")
        return True

    def toggle_admin(self, email: Optional[str] = None, *, assume_yes: bool = False) -> bool:
        if email is None:
            email = self._prompt_email("Enter email of user: ", show_list=True)
            if email is None:
                return False
        email = validate_email(email)
        self._require_user(email)

        result = self._executor.database(self._queries.admin_flag(email))
        if not result.succeeded:
            raise RemoteCommandError("Failed to read current admin status", result)
        current, guessed = self._formatter.admin_flag(result.stdout)
        if current is None:
            raise UserNotFoundError(email)

        self._io.header(f"Toggle Admin Status: {email}")
        if guessed:
            self._io.warning(DEGRADED_WARNING)
        if current:
            self._io.line("Current status: ADMIN")
            prompt, done = "Remove admin privileges? (y/n): ", "✓ Admin privileges removed"
        else:
            self._io.line("Current status: USER")
            prompt, done = "Grant admin privileges? (y/n): ", "✓ Admin privileges granted"

        if not assume_yes and not self._io.confirm(prompt):
            self._io.warning("Cancelled")
            return False

        result = self._executor.database(self._queries.set_admin(email, not current))
        if not result.succeeded:
            self._io.error("✗ Failed to update admin status")
            return False

        logger.info("Set isAdmin=%s for %s", not current, email)
        self._io.success(done)
        return True

    def verify_email(self, email: Optional[str] = None, *, assume_yes: bool = False) -> bool:
        if email is None:
            email = self._prompt_email("Enter email of user to verify: ", show_list=True)
            if email is None:
                return False
        email = validate_email(email)

        self._io.header(f"Verify Email: {email}")
        if not assume_yes and not self._io.confirm(f"Mark {email} as verified? (y/n): "):
            self._io.warning("Verification cancelled.")
            return False

        result = self._executor.database(self._queries.confirm_email(email))
        if not result.succeeded:
            self._io.error("✗ Failed to verify email")
            return False
        if _NO_MATCH.search(result.stdout):
            raise UserNotFoundError(email)

        logger.info("Marked %s as verified", email)
        self._io.success("✓ Email verified successfully!")
        return True

    def show_stats(self) -> bool:
        self._io.header("User Statistics")

        total = self._count(self._queries.count_all())
        admins = self._count(self._queries.count_admins())
        verified = self._count(self._queries.count_verified())

        self._io.lines(self._formatter.stats(total, admins, verified).lines)
        return True


__all__ = ["DEGRADED_WARNING", "UserManager", "UserNotFoundError"]
