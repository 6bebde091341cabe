"""
Role-conditioned validation for notifications.

A candidate notification is described by one of two parameter variants:
``StudentParams`` must reference an assessment, ``StaffParams`` must
reference a submission. The recipient's role only selects the variant and is
never stored on the notification.
"""
import dataclasses
from dataclasses import dataclass
from typing import Optional

from django.contrib.auth import get_user_model
from django.db import DEFAULT_DB_ALIAS

from assessments.models import Assessment, Question, Submission
from .exceptions import (
    ForeignKeyViolation,
    InvalidFieldValue,
    InvalidNotificationType,
    InvalidRole,
    MissingRequiredField,
    UnexpectedField,
)
from .models import Notification, NotificationType

ROLE_STUDENT = 'student'
ROLE_STAFF = 'staff'


class _RequiredFieldsMixin:
    def __post_init__(self):
        for field in dataclasses.fields(self):
            if field.default is dataclasses.MISSING and getattr(self, field.name) is None:
                raise MissingRequiredField(field.name)
        if not isinstance(self.read, bool):
            raise InvalidFieldValue('read', self.read)


@dataclass(frozen=True)
class StudentParams(_RequiredFieldsMixin):
    type: str
    user_id: int
    read: bool
    assessment_id: int
    submission_id: Optional[int] = None
    question_id: Optional[int] = None

    role = ROLE_STUDENT


@dataclass(frozen=True)
class StaffParams(_RequiredFieldsMixin):
    type: str
    user_id: int
    read: bool
    submission_id: int
    assessment_id: Optional[int] = None
    question_id: Optional[int] = None

    role = ROLE_STAFF


PARAMS_BY_ROLE = {
    ROLE_STUDENT: StudentParams,
    ROLE_STAFF: StaffParams,
}


def build_params(role, **fields):
    """Pick the parameter variant for ``role`` and check its required fields."""
    try:
        params_class = PARAMS_BY_ROLE[role]
    except (KeyError, TypeError):
        raise InvalidRole(role) from None

    names = {field.name for field in dataclasses.fields(params_class)}
    unexpected = sorted(set(fields) - names)
    if unexpected:
        raise UnexpectedField(unexpected[0])

    values = {}
    for field in dataclasses.fields(params_class):
        default = None if field.default is dataclasses.MISSING else field.default
        values[field.name] = fields.get(field.name, default)
    return params_class(**values)


def _references():
    return (
        ('user_id', get_user_model()),
        ('assessment_id', Assessment),
        ('submission_id', Submission),
        ('question_id', Question),
    )


def validate_notification(params, using=DEFAULT_DB_ALIAS):
    """
    Check ``params`` against the database and return an unsaved Notification.

    Raises InvalidNotificationType for a type outside the closed set and
    ForeignKeyViolation for the first populated reference that does not exist.
    """
    if params.type not in NotificationType.values:
        raise InvalidNotificationType(params.type)

    for field, model in _references():
        value = getattr(params, field)
        if value is None:
            continue
        if not model._default_manager.using(using).filter(pk=value).exists():
            raise ForeignKeyViolation(field, value)

    return Notification(
        type=params.type,
        read=params.read,
        user_id=params.user_id,
        assessment_id=params.assessment_id,
        submission_id=params.submission_id,
        question_id=params.question_id,
    )


def validate(candidate, role, using=DEFAULT_DB_ALIAS):
    """Validate a mapping of notification fields for a recipient with ``role``."""
    return validate_notification(build_params(role, **candidate), using=using)
