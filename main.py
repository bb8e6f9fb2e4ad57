"""Command-line interface for managing Overleaf user accounts on Kubernetes."""

from __future__ import annotations
import argparse
import dataclasses
import logging
import os
import sys
from typing import Sequence

import yaml

from useradmin import create_manager
from useradmin.actions import UserManager
from useradmin.config import CONFIG_ENV_VAR, ClusterConfig, load_cluster_config, resolve_config_path
from useradmin.console import ConsoleIO
from useradmin.kubectl import ToolMissingError, ensure_kubectl_available
from useradmin.models import Operation, UserCommand

logger = logging.getLogger("overleaf_admin.main")

MENU_TITLE = "Overleaf User Management"
MENU_ITEMS = (
    (Operation.LIST, "List all users"),
    (Operation.VIEW, "View user details"),
    (Operation.CREATE, "Create new user"),
    (Operation.DELETE, "Delete user"),
    (Operation.TOGGLE_ADMIN, "Toggle admin status"),
    (Operation.VERIFY_EMAIL, "Verify user email"),
    (Operation.STATS, "Show statistics"),
    (Operation.EXIT, "Exit"),
)

_SUBCOMMANDS = {
    "list": Operation.LIST,
    "show": Operation.VIEW,
    "create": Operation.CREATE,
    "delete": Operation.DELETE,
    "toggle-admin": Operation.TOGGLE_ADMIN,
    "verify": Operation.VERIFY_EMAIL,
    "stats": Operation.STATS,
}


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Overleaf user management utilities")
    parser.add_argument(
        "--config",
        default=None,
        help=f"Path to the cluster YAML configuration (default: ${CONFIG_ENV_VAR} or config/cluster.yaml)",
    )
    parser.add_argument("--namespace", default=None, help="Override the Kubernetes namespace")
    parser.add_argument("--context", default=None, help="kubectl context to use")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging verbosity (default: WARNING)",
    )
    subparsers = parser.add_subparsers(dest="command")
    parser.set_defaults(command="menu")

    subparsers.add_parser("menu", help="Launch the interactive administration console")
    subparsers.add_parser("list", help="List all users")
    subparsers.add_parser("stats", help="Show user statistics")

    show_parser = subparsers.add_parser("show", help="Show a single user document")
    show_parser.add_argument("email")

    create_parser = subparsers.add_parser("create", help="Create a user")
    create_parser.add_argument("email")
    create_parser.add_argument(
        "--admin",
        dest="admin",
        action="store_const",
        const=True,
        default=None,
        help="Grant admin privileges to the new user",
    )
    create_parser.add_argument(
        "--no-admin",
        dest="admin",
        action="store_const",
        const=False,
        help="Create a regular user without prompting",
    )

    delete_parser = subparsers.add_parser("delete", help="Delete a user and all their projects")
    delete_parser.add_argument("email")
    delete_parser.add_argument(
        "--skip-email",
        dest="skip_email",
        action="store_const",
        const=True,
        default=None,
        help="Do not send the deletion notification email",
    )
    delete_parser.add_argument(
        "--notify",
        dest="skip_email",
        action="store_const",
        const=False,
        help="Send the deletion notification email without prompting",
    )

    toggle_parser = subparsers.add_parser("toggle-admin", help="Grant or remove admin privileges")
    toggle_parser.add_argument("email")

    verify_parser = subparsers.add_parser("verify", help="Mark a user's email address as confirmed")
    verify_parser.add_argument("email")

    for sub in (create_parser, delete_parser, toggle_parser, verify_parser):
        sub.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    args_list = list(argv) if argv is not None else sys.argv[1:]
    return parser.parse_args(args_list)


def _command_from_args(args: argparse.Namespace) -> UserCommand:
    return UserCommand(
        operation=_SUBCOMMANDS[args.command],
        email=getattr(args, "email", None),
        admin=getattr(args, "admin", None),
        skip_email=getattr(args, "skip_email", None),
        assume_yes=getattr(args, "yes", False),
    )


def _load_config(args: argparse.Namespace) -> ClusterConfig:
    config_path = resolve_config_path(args.config or os.getenv(CONFIG_ENV_VAR))
    config = load_cluster_config(config_path)
    logger.debug("Using cluster configuration from %s", config_path)

    overrides = {}
    if args.namespace:
        overrides["namespace"] = args.namespace
    if args.context:
        overrides["context"] = args.context
    if overrides:
        config = dataclasses.replace(config, **overrides)
    return config


def _show_menu(io: ConsoleIO) -> None:
    io.header(MENU_TITLE)
    for operation, label in MENU_ITEMS:
        io.line(f"{operation.value}) {label}")
    io.line()


def _run_admin_cli(manager: UserManager, io: ConsoleIO) -> None:
    """Provide an interactive management console for administrators."""

    try:
        while True:
            _show_menu(io)
            choice = io.ask("Select an option (1-8): ")
            operation = Operation.from_choice(choice)

            if operation is None:
                io.error("Invalid option. Please try again.")
            elif operation is Operation.EXIT:
                io.success("Goodbye!")
                return
            else:
                manager.run(UserCommand(operation))

            io.line()
            io.pause()
    except (KeyboardInterrupt, EOFError):
        io.line("\nExiting administration console.")


def main(argv: Sequence[str] | None = None, *, io: ConsoleIO | None = None) -> int:
    """Entry point for CLI usage."""

    args = _parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(asctime)s [%(levelname)s] %(message)s")

    io = io or ConsoleIO()

    try:
        config = _load_config(args)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        io.error(f"Error: invalid configuration: {exc}")
        return 1

    try:
        ensure_kubectl_available(config.kubectl)
    except ToolMissingError as exc:
        io.error(f"Error: {exc}")
        return 1

    if not config.structured_output:
        io.warning("Warning: structured output is disabled. Some features may not work properly.")

    manager = create_manager(config, io=io)

    if args.command == "menu":
        _run_admin_cli(manager, io)
        return 0

    try:
        succeeded = manager.run(_command_from_args(args))
    except (KeyboardInterrupt, EOFError):
        io.line()
        io.warning("Cancelled")
        return 1
    return 0 if succeeded else 1


if __name__ == "__main__":
    raise SystemExit(main())
