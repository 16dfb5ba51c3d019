"""Clear ledger history before pointing the service at freshly deployed contracts.

Users, rewards and events are kept.
"""

import argparse
from pathlib import Path
import sys

from sqlalchemy import delete, update

if __package__ is None or __package__ == "":
    sys.path.append(str(Path(__file__).resolve().parents[1]))

from campus_rewards.db.session import session_scope
from campus_rewards.models.activity import Activity
from campus_rewards.models.enums import ParticipationStatus
from campus_rewards.models.event_participation import EventParticipation
from campus_rewards.models.notification import Notification
from campus_rewards.models.redemption import Redemption
from campus_rewards.models.transaction import Transaction


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Delete redemptions, transactions, activities and notifications.")
    parser.add_argument("--yes", action="store_true", help="Skip the confirmation prompt.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    if not args.yes:
        answer = input("This deletes all ledger history. Type 'yes' to continue: ")
        if answer.strip().lower() != "yes":
            print("Aborted.")
            return

    with session_scope() as db:
        for model in (Redemption, Activity, Transaction, Notification):
            deleted = db.execute(delete(model)).rowcount
            print(f"Deleted {model.__tablename__}: {deleted}")
        db.execute(
            update(EventParticipation)
            .where(EventParticipation.status == ParticipationStatus.APPROVED)
            .values(status=ParticipationStatus.PENDING)
        )
    print("Users, rewards and events were preserved.")


if __name__ == "__main__":
    main()
