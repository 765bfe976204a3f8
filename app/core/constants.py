from typing import FrozenSet, List, Tuple

# Mirrors ``NotificationStatus``; kept literal so models can import it
# without pulling in the schema package.
_NOTIFICATION_STATUS_VALUES: Tuple[str, ...] = ("pending", "sent", "failed", "cancelled")

NOTIFICATION_STATUSES: FrozenSet[str] = frozenset(_NOTIFICATION_STATUS_VALUES)

NOTIFICATION_STATUS_CHECK_CLAUSE: str = (
    f"status IN ({', '.join(repr(s) for s in _NOTIFICATION_STATUS_VALUES)})"
)

# Terminal states, no further transitions allowed
TERMINAL_NOTIFICATION_STATUSES: FrozenSet[str] = frozenset(
    {"sent", "failed", "cancelled"}
)

# Hours before the due date at which a reminder fires
DEFAULT_NOTIFICATION_OFFSETS_HOURS: List[int] = [24, 12, 6, 3, 1]

TASK_REMINDER_EVENT: str = "task_reminder"

MIN_FOLLOW_UP_INTERVAL_DAYS: int = 1

# Tokens recognised by follow-up templates
TEMPLATE_TOKENS: FrozenSet[str] = frozenset({"name", "service", "company"})

DEFAULT_EMAIL_TEMPLATE: str = (
    "Hi {name}, this is a follow-up regarding your {service} request. "
    "Please let us know if you have any questions!"
)
DEFAULT_EMAIL_SUBJECT: str = "Follow-up on your {service} inquiry"
DEFAULT_SMS_TEMPLATE: str = (
    "Hi {name}, we wanted to follow up on your recent inquiry about our "
    "{service} services. Are you still interested in learning more?"
)

# Redis key prefixes
REALTIME_CHANNEL_PREFIX: str = "notifications"
STATS_CACHE_PREFIX: str = "notification_stats"
