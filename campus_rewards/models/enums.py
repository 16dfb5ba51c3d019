from enum import StrEnum


class Role(StrEnum):
    USER = "USER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


ADMIN_ROLES = frozenset({Role.ADMIN, Role.SUPER_ADMIN})


class UserStatus(StrEnum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ActivityType(StrEnum):
    CONTEST_PARTICIPATION = "CONTEST_PARTICIPATION"
    EVENT_ATTENDANCE = "EVENT_ATTENDANCE"
    WORKSHOP_COMPLETION = "WORKSHOP_COMPLETION"
    CONTENT_CREATION = "CONTENT_CREATION"
    VOLUNTEERING = "VOLUNTEERING"


class TransactionType(StrEnum):
    EARN = "EARN"
    REDEEM = "REDEEM"
    TRANSFER = "TRANSFER"


class TransactionStatus(StrEnum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class RedemptionStatus(StrEnum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    FULFILLED = "FULFILLED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


TERMINAL_REDEMPTION_STATUSES = frozenset({RedemptionStatus.DELIVERED, RedemptionStatus.CANCELLED})


class ParticipationStatus(StrEnum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"


class NotificationType(StrEnum):
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"
