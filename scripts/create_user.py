import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from userstore.database import ConnectionFactory, resolve_database_path
from userstore.errors import ConstraintError, UserStoreError
from userstore.repository import UserRepository


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a user record")
    parser.add_argument("name", help="Display name for the user")
    parser.add_argument("email", help="Unique email address")
    parser.add_argument(
        "--db",
        dest="db_path",
        default=None,
        help="Path to the SQLite database (defaults to USERSTORE_DB_PATH or data/app.db)",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    db_env = args.db_path or os.getenv("USERSTORE_DB_PATH")
    factory = ConnectionFactory(resolve_database_path(db_env))

    try:
        factory.initialize()
        user = UserRepository(factory).create(args.email.strip(), args.name.strip())
    except ConstraintError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except UserStoreError as exc:
        print(f"Database error: {exc}", file=sys.stderr)
        return 2

    print(f"Created user #{user.id}: {user.name} <{user.email}>")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
