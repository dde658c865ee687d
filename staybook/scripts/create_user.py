"""
Create a user (e.g. first admin). Run from project root:
  python -m staybook.scripts.create_user EMAIL PASSWORD [--username NAME] [--role ROLE]
Example:
  python -m staybook.scripts.create_user admin@example.com your-secure-password --role Admin
"""
import argparse
import logging
import sys

from staybook.core.config import get_settings
from staybook.core.database import unit_of_work
from staybook.models import Role
from staybook.repositories.errors import DataAccessError
from staybook.services.account_service import AccountError, AccountService
from staybook.services.role_resolver import parse_role

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a Staybook user (no registration UI).")
    parser.add_argument("email", help="Email address (max 100 chars)")
    parser.add_argument("password", help="Password (8-128 chars)")
    parser.add_argument("--username", default=None, help="Optional unique username")
    parser.add_argument(
        "--role",
        default=Role.GUEST.label,
        choices=[role.label for role in Role],
        help="Role to grant in addition to the implicit Guest role",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=get_settings().LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%SZ",
    )

    role = parse_role(args.role)
    try:
        with unit_of_work() as uow:
            uow.begin_transaction()
            user = AccountService(uow).register_user(args.email, args.password, username=args.username)
            if role != Role.GUEST:
                uow.roles.assign_role_to_user(user.id, role)
            uow.commit_transaction()
    except AccountError as e:
        print(e.message, file=sys.stderr)
        return 1
    except DataAccessError as e:
        logger.exception("Creating user failed: %s", e.message)
        return 1
    print(f"Created user '{user.email}' (id={user.id}) with role '{role.label}'.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
