"""Command-line interface for the user store service."""

from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

import yaml

from userstore.config import Settings, load_settings
from userstore.database import ConnectionFactory
from userstore.errors import ConstraintError, UserStoreError
from userstore.repository import UserRepository

logger = logging.getLogger("userstore.main")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="User store utilities")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML configuration file (default: USERSTORE_CONFIG or config/userstore.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-db", help="Create the users and user_deletions_log tables")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP API")
    serve_parser.add_argument("--host", default=None, help="Bind address (overrides configuration)")
    serve_parser.add_argument("--port", type=int, default=None, help="Listen port (overrides configuration)")

    subparsers.add_parser("admin", help="Launch the interactive administration console")

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "admin", "init-db"}

    # Global options come first; everything else defaults to "serve".
    prefix: list[str] = []
    if args_list[:1] == ["--config"] and len(args_list) >= 2:
        prefix, args_list = args_list[:2], args_list[2:]

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args([*prefix, *args_list])
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args([*prefix, *args_list])
            args_list = ["serve", *args_list]

    return parser.parse_args([*prefix, *args_list])


def _initialise_repository(settings: Settings) -> UserRepository:
    factory = ConnectionFactory(settings.database_path, timeout=settings.busy_timeout)
    factory.initialize()
    logger.info("Database initialised at %s", settings.database_path)
    return UserRepository(factory)


def _serve(*, repository: UserRepository, settings: Settings, host: str | None, port: int | None) -> None:
    from userstore.api import create_app
    import uvicorn

    bind_host = host or settings.host
    bind_port = port or settings.port
    logger.info("Starting user store API on http://%s:%s", bind_host, bind_port)

    app = create_app(repository, settings=settings)
    uvicorn.run(app, host=bind_host, port=bind_port, log_level="info")


def _run_admin_cli(repository: UserRepository) -> None:
    """Provide an interactive console for administrators."""

    print("User Store Administration Console")
    print("Press Ctrl+C at any time to exit.\n")

    try:
        while True:
            print("Select an option:")
            print("  1) List all users")
            print("  2) Add a new user")
            print("  3) Delete a user")
            print("  4) Show deletion log")
            print("  5) Exit")

            choice = input("Enter choice [1-5]: ").strip()

            if choice == "1":
                _list_users(repository)
            elif choice == "2":
                _add_user(repository)
            elif choice == "3":
                _delete_user(repository)
            elif choice == "4":
                _show_deletions(repository)
            elif choice == "5":
                print("Goodbye!")
                return
            else:
                print("Invalid selection. Please choose a number from the menu.\n")

            print()
    except KeyboardInterrupt:
        print("\nExiting administration console.")


def _list_users(repository: UserRepository) -> None:
    users = repository.list_all()
    if not users:
        print("No users are currently registered.")
        return

    print(f"{len(users)} user(s) found:")
    print(f"{'ID':>4}  {'Name':<24}  {'Email':<32}  Created")
    print("-" * 80)
    for user in users:
        print(f"{user.id:>4}  {user.name:<24}  {user.email:<32}  {user.created_at}")


def _add_user(repository: UserRepository) -> None:
    print("\nCreate a new user (leave the name blank to cancel).")
    name = input("Name: ").strip()
    if not name:
        print("User creation cancelled.")
        return

    email = input("Email address: ").strip()
    if not email:
        print("An email address is required.")
        return

    try:
        user = repository.create(email, name)
    except ConstraintError as exc:
        print(f"Failed to create user: {exc}")
        return

    print(f"Created user #{user.id}: {user.name} <{user.email}>")


def _delete_user(repository: UserRepository) -> None:
    raw = input("User ID to delete: ").strip()
    try:
        user_id = int(raw)
    except ValueError:
        print("The user ID must be an integer.")
        return
    if user_id <= 0:
        print("The user ID must be positive.")
        return

    result = repository.delete_with_log(user_id)
    if result is None:
        print(f"No user with ID {user_id} exists.")
        return

    print(f"Deleted user #{result.user.id} <{result.user.email}> at {result.deleted_at}")


def _show_deletions(repository: UserRepository) -> None:
    entries = repository.list_deletions()
    if not entries:
        print("No deletions have been recorded.")
        return

    print(f"{'Log':>4}  {'User':>4}  {'Email':<32}  Deleted")
    print("-" * 80)
    for entry in entries:
        print(f"{entry.id:>4}  {entry.user_id:>4}  {entry.email:<32}  {entry.deleted_at}")


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    try:
        settings = load_settings(Path(args.config).expanduser() if args.config else None)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise SystemExit(f"Invalid configuration: {exc}") from exc

    try:
        repository = _initialise_repository(settings)
    except UserStoreError as exc:
        raise SystemExit(f"Failed to initialise the database: {exc}") from exc

    if args.command == "serve":
        _serve(
            repository=repository,
            settings=settings,
            host=args.host,
            port=args.port,
        )
    elif args.command == "admin":
        _run_admin_cli(repository)
    elif args.command == "init-db":
        print("Database initialisation complete.")


if __name__ == "__main__":
    main()
