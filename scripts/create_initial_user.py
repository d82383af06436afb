"""Utility script to create a user and print an access token for it."""

from __future__ import annotations

import argparse

from sqlalchemy.exc import SQLAlchemyError

from jeenora_api.domain.entities import ROLE_ADMIN, ROLE_CANDIDATE, ROLE_EMPLOYER, User
from jeenora_api.infrastructure.database import SessionLocal, initialize_database
from jeenora_api.infrastructure.repositories import UserRepository
from jeenora_api.infrastructure.security import create_access_token


def parse_args() -> argparse.Namespace:
    """Parse command line arguments for user creation."""

    parser = argparse.ArgumentParser(
        description="Create a user for the Jeenora API and print a bearer token.",
    )
    parser.add_argument("--name", default="Administrator", help="Full name of the user")
    parser.add_argument(
        "--email",
        default="admin@example.com",
        help="Email address used for notification emails (default: admin@example.com)",
    )
    parser.add_argument("--phone", default=None, help="Phone number used for WhatsApp")
    parser.add_argument(
        "--role",
        default=ROLE_ADMIN,
        choices=(ROLE_ADMIN, ROLE_CANDIDATE, ROLE_EMPLOYER),
        help="Role of the user (default: admin)",
    )
    return parser.parse_args()


def main() -> None:
    """Create a user using the provided command line arguments."""

    args = parse_args()
    initialize_database()

    session = SessionLocal()
    try:
        repository = UserRepository(session)
        if args.email and repository.get_by_email(args.email) is not None:
            raise SystemExit(f"A user with email {args.email} already exists.")
        user = repository.create(
            User(
                id=None,
                name=args.name,
                email=args.email,
                phone=args.phone,
                role=args.role,
                is_active=True,
                created_at=None,
            )
        )
    except SQLAlchemyError as exc:
        session.rollback()
        raise SystemExit(f"Could not store the user: {exc}") from exc
    else:
        print(
            "User created:\n"
            f"  ID: {user.id}\n"
            f"  Name: {user.name}\n"
            f"  Email: {user.email or '-'}\n"
            f"  Role: {user.role}\n"
            f"  Token: {create_access_token({'sub': str(user.id)})}"
        )
    finally:
        session.close()


if __name__ == "__main__":
    main()
