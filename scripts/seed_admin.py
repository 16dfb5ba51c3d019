import argparse
from pathlib import Path
import sys

if __package__ is None or __package__ == "":
    sys.path.append(str(Path(__file__).resolve().parents[1]))

from campus_rewards.core.config import get_settings
from campus_rewards.core.security import is_wallet_address
from campus_rewards.db.session import get_session_factory
from campus_rewards.models.enums import Role, UserStatus
from campus_rewards.services.users import find_or_create_user


def parse_args() -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Create or promote an admin wallet.")
    parser.add_argument("--wallet", default=settings.bootstrap_admin_wallet)
    parser.add_argument("--role", choices=[Role.ADMIN, Role.SUPER_ADMIN], default=Role.SUPER_ADMIN)
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    if not args.wallet or not is_wallet_address(args.wallet):
        raise SystemExit("A valid --wallet address (0x + 40 hex chars) is required.")

    session_factory = get_session_factory()
    with session_factory() as db:
        user, created = find_or_create_user(db, args.wallet)
        user.role = args.role
        user.status = UserStatus.APPROVED
        db.commit()
        action = "created" if created else "updated"
    print(f"Admin {user.wallet_address} {action} ({args.role}).")


if __name__ == "__main__":
    main()
