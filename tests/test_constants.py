from app.core.config import settings
from app.core.constants import (
    DEFAULT_EMAIL_SUBJECT,
    DEFAULT_EMAIL_TEMPLATE,
    DEFAULT_NOTIFICATION_OFFSETS_HOURS,
    DEFAULT_SMS_TEMPLATE,
    NOTIFICATION_STATUS_CHECK_CLAUSE,
    NOTIFICATION_STATUSES,
    TEMPLATE_TOKENS,
    TERMINAL_NOTIFICATION_STATUSES,
)
from app.schemas.common import NotificationStatus


class TestConstantsConsistency:
    """Verify that constants, enums, and schemas stay in sync."""

    def test_notification_statuses_match_enum(self):
        """Every NotificationStatus value must appear in NOTIFICATION_STATUSES."""
        assert {member.value for member in NotificationStatus} == NOTIFICATION_STATUSES

    def test_terminal_statuses_exclude_pending(self):
        assert TERMINAL_NOTIFICATION_STATUSES == NOTIFICATION_STATUSES - {"pending"}

    def test_check_clause_lists_every_status(self):
        for status in NOTIFICATION_STATUSES:
            assert f"'{status}'" in NOTIFICATION_STATUS_CHECK_CLAUSE

    def test_default_offsets_descending_and_positive(self):
        assert DEFAULT_NOTIFICATION_OFFSETS_HOURS == [24, 12, 6, 3, 1]
        assert settings.TASK_NOTIFICATION_OFFSETS_HOURS == DEFAULT_NOTIFICATION_OFFSETS_HOURS

    def test_default_templates_only_use_known_tokens(self):
        import re

        for template in (DEFAULT_EMAIL_TEMPLATE, DEFAULT_EMAIL_SUBJECT, DEFAULT_SMS_TEMPLATE):
            assert set(re.findall(r"\{(\w+)\}", template)) <= TEMPLATE_TOKENS
