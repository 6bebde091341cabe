"""
Failures raised by the notification triggers and read-state operations.

Expected outcomes (an unfinished submission, an empty broadcast) are not
exceptions; see ``NotComplete`` and ``BatchResult`` in ``notifications.utils``.
"""
from django.core.exceptions import ObjectDoesNotExist, ValidationError


class NotificationError(Exception):
    """Base class for notification failures that are not validation errors."""


class NotificationValidationError(ValidationError):
    """A candidate notification was rejected before persisting."""


class InvalidRole(NotificationValidationError):
    def __init__(self, role):
        self.role = role
        super().__init__(
            "Invalid role %(role)r: expected 'student' or 'staff'",
            code='invalid_role',
            params={'role': role},
        )


class InvalidNotificationType(NotificationValidationError):
    def __init__(self, notification_type):
        self.notification_type = notification_type
        super().__init__(
            "Invalid notification type %(type)r",
            code='invalid_type',
            params={'type': notification_type},
        )


class UnexpectedField(NotificationValidationError):
    def __init__(self, field):
        self.field = field
        super().__init__(
            "%(field)s is not a notification field",
            code='unexpected_field',
            params={'field': field},
        )


class InvalidFieldValue(NotificationValidationError):
    def __init__(self, field, value):
        self.field = field
        self.value = value
        super().__init__(
            "Invalid value %(value)r for %(field)s",
            code='invalid',
            params={'field': field, 'value': value},
        )


class MissingRequiredField(NotificationValidationError):
    def __init__(self, field):
        self.field = field
        super().__init__(
            "%(field)s is required",
            code='required',
            params={'field': field},
        )


class ForeignKeyViolation(NotificationValidationError):
    def __init__(self, field, value):
        self.field = field
        self.value = value
        super().__init__(
            "%(field)s %(value)s does not exist",
            code='foreign_key',
            params={'field': field, 'value': value},
        )


class NotificationNotFound(ObjectDoesNotExist):
    def __init__(self, message="Notification does not exist or does not belong to user"):
        super().__init__(message)


class MissingGroupAssignment(NotificationError):
    def __init__(self, student_id):
        self.student_id = student_id
        super().__init__(f"Student {student_id} has no group leader assigned")


class BatchError(NotificationError):
    """One recipient failed during a broadcast; the whole batch was rolled back."""

    def __init__(self, failing_user_id, cause):
        self.failing_user_id = failing_user_id
        self.cause = cause
        super().__init__(f"Broadcast aborted at user {failing_user_id}: {cause}")
