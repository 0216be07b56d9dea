"""
Create users and assign roles (role changes are not exposed over HTTP). Run from project root:
  python -m addressbook.scripts.manage_users create EMAIL PASSWORD FIRST_NAME LAST_NAME [--role ADMIN]
  python -m addressbook.scripts.manage_users set-role EMAIL ROLE
  python -m addressbook.scripts.manage_users list
Example:
  python -m addressbook.scripts.manage_users set-role jane@example.com ADMIN
"""
import argparse
import logging
import sys

from addressbook.core.config import get_settings
from addressbook.core.database import SessionLocal
from addressbook.core.roles import Role
from addressbook.core.security import PASSWORD_MAX_LEN, PASSWORD_MIN_LEN
from addressbook.services.credentials import CredentialService
from addressbook.services.errors import AddressBookError
from addressbook.services.notifications import (
    BestEffortDispatcher,
    LoggingEventPublisher,
    LoggingNotifier,
)
from addressbook.services.repositories import UserRepository
from addressbook.services.tokens import TokenService

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)

ROLE_CHOICES = [r.value for r in Role]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage address book users.")
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create", help="Create a user")
    create.add_argument("email")
    create.add_argument("password", help=f"Password ({PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} chars)")
    create.add_argument("first_name")
    create.add_argument("last_name")
    create.add_argument("--role", default=Role.USER.value, choices=ROLE_CHOICES)

    set_role = sub.add_parser("set-role", help="Change a user's role")
    set_role.add_argument("email")
    set_role.add_argument("role", choices=ROLE_CHOICES)

    sub.add_parser("list", help="List users and their roles")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "create" and not (
        PASSWORD_MIN_LEN <= len(args.password) <= PASSWORD_MAX_LEN
    ):
        print(
            f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.",
            file=sys.stderr,
        )
        return 1

    db = SessionLocal()
    try:
        service = CredentialService(
            UserRepository(db),
            TokenService.from_settings(get_settings()),
            BestEffortDispatcher(LoggingNotifier(), LoggingEventPublisher()),
        )
        if args.command == "create":
            user = service.register(
                args.email,
                args.password,
                first_name=args.first_name,
                last_name=args.last_name,
            )
            if args.role != Role.USER.value:
                user = service.assign_role(user.email, Role(args.role))
            print(f"Created user '{user.email}' with role '{Role(user.role).value}'.")
        elif args.command == "set-role":
            user = service.assign_role(args.email, Role(args.role))
            print(f"User '{user.email}' now has role '{Role(user.role).value}'.")
        else:
            for user in service.users.find_all():
                print(f"{user.id}\t{user.email}\t{Role(user.role).value}")
        return 0
    except AddressBookError as e:
        print(e.message, file=sys.stderr)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
