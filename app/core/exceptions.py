class FieldServiceError(Exception):
    """Base class for all field-service domain exceptions.

    Every custom exception in this module inherits from here so that a
    single ``except FieldServiceError`` clause can catch any domain
    error.
    """

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(detail)


class TaskNotFoundError(FieldServiceError):
    """Raised when a requested task does not exist."""

    def __init__(self, detail: str = "Task not found"):
        super().__init__(detail)


class UserNotFoundError(FieldServiceError):
    """Raised when a user does not exist or belongs to another organization."""

    def __init__(self, detail: str = "User not found"):
        super().__init__(detail)


class LeadNotFoundError(FieldServiceError):
    """Raised when a requested lead does not exist."""

    def __init__(self, detail: str = "Lead not found"):
        super().__init__(detail)


class OrganizationNotFoundError(FieldServiceError):
    """Raised when a requested organization does not exist."""

    def __init__(self, detail: str = "Organization not found"):
        super().__init__(detail)


class InvalidFollowUpIntervalError(FieldServiceError):
    """Raised when an automatic follow-up interval is not a positive number of days."""

    def __init__(self, detail: str = "Follow-up interval must be at least 1 day"):
        super().__init__(detail)


class ChannelNotConfiguredError(FieldServiceError):
    """Raised at the point of use when a delivery channel lacks credentials.

    Dispatchers catch this per channel and record it as the failure or
    skip reason; it never aborts a dispatch cycle.
    """

    def __init__(self, detail: str = "Delivery channel not configured"):
        super().__init__(detail)


class ChannelDeliveryError(FieldServiceError):
    """Raised when an external provider rejects or cannot receive a message."""

    def __init__(self, detail: str = "Delivery channel failed"):
        super().__init__(detail)


class NotificationDataError(FieldServiceError):
    """Raised when a notification row is missing data needed for delivery."""

    def __init__(self, detail: str = "Notification data incomplete"):
        super().__init__(detail)
