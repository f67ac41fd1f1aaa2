"""Create an admin account from the command line.

Usage:
    python -m backend.create_admin --email admin@example.edu --first-name Ada \
        --last-name Lovelace --department Administration --graduation-year 2010
"""
import argparse
import getpass
import sys

from backend.accounts import service
from backend.core.errors import AccountError
from backend.database import Base, SessionLocal, engine
from backend.models import id_counter, user  # noqa: F401


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Provision an AlumniConnect admin account.")
    parser.add_argument("--email", required=True)
    parser.add_argument("--first-name", required=True)
    parser.add_argument("--last-name", required=True)
    parser.add_argument("--department", required=True)
    parser.add_argument("--graduation-year", required=True, type=int)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None, password: str | None = None) -> int:
    args = parse_args(argv)
    password = password or getpass.getpass("Password: ")

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        admin = service.provision_admin(
            db,
            {
                "email": args.email,
                "password": password,
                "first_name": args.first_name,
                "last_name": args.last_name,
                "department": args.department,
                "graduation_year": args.graduation_year,
            },
        )
    except AccountError as exc:
        print(f"Could not create admin: {exc.message}", file=sys.stderr)
        for error in getattr(exc, "errors", []):
            print(f"  {error['field']}: {error['message']}", file=sys.stderr)
        return 1
    finally:
        db.close()

    print(f"Created admin {admin.email} (id {admin.id}).")
    return 0


if __name__ == "__main__":
    sys.exit(main())
