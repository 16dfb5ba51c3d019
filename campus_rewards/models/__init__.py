from campus_rewards.models.activity import Activity
from campus_rewards.models.event import Event
from campus_rewards.models.event_participation import EventParticipation
from campus_rewards.models.notification import Notification
from campus_rewards.models.redemption import Redemption
from campus_rewards.models.reward import Reward
from campus_rewards.models.transaction import Transaction
from campus_rewards.models.user import User

__all__ = [
    "User",
    "Activity",
    "Transaction",
    "Reward",
    "Redemption",
    "Event",
    "EventParticipation",
    "Notification",
]
