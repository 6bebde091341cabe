import logging
from dataclasses import dataclass
from datetime import timedelta

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import DEFAULT_DB_ALIAS, IntegrityError, connections, transaction
from django.utils import timezone

from assessments.models import Answer, Assessment, Submission
from groups.models import Group
from .aggregation import is_fully_autograded, is_fully_manually_graded
from .exceptions import (
    BatchError,
    MissingGroupAssignment,
    NotificationNotFound,
    NotificationValidationError,
)
from .models import Notification, NotificationType
from .validators import StaffParams, StudentParams, build_params, validate_notification

logger = logging.getLogger(__name__)

User = get_user_model()


@dataclass(frozen=True)
class NotComplete:
    """Grading of the submission is unfinished, so nothing was created."""
    submission_id: int


@dataclass(frozen=True)
class BatchResult:
    created_count: int


def create_notification(params, using=DEFAULT_DB_ALIAS):
    """Validate and persist a single notification"""
    notification = validate_notification(params, using=using)
    notification.save(using=using)
    logger.info(
        "Created %s notification %s for user %s",
        notification.type, notification.pk, notification.user_id,
    )
    return notification


# ===== Single-recipient triggers =====

def notify_on_answer_graded(answer_id, using=DEFAULT_DB_ALIAS):
    """Notify the student once every answer of the submission has been autograded"""
    answer = Answer.objects.using(using).select_related('submission').get(pk=answer_id)
    submission = answer.submission

    if not is_fully_autograded(submission.pk, using=using):
        logger.debug("Submission %s is not fully autograded yet", submission.pk)
        return NotComplete(submission.pk)

    return create_notification(
        StudentParams(
            type=NotificationType.AUTOGRADED,
            user_id=submission.student_id,
            read=False,
            assessment_id=submission.assessment_id,
            submission_id=submission.pk,
        ),
        using=using,
    )


def notify_on_submission_graded(submission_id, using=DEFAULT_DB_ALIAS):
    """Notify the student once every question of the submission has a grader"""
    submission = Submission.objects.using(using).get(pk=submission_id)

    if not is_fully_manually_graded(submission.pk, using=using):
        logger.debug("Submission %s is not fully manually graded yet", submission.pk)
        return NotComplete(submission.pk)

    return create_notification(
        StudentParams(
            type=NotificationType.GRADED,
            user_id=submission.student_id,
            read=False,
            assessment_id=submission.assessment_id,
            submission_id=submission.pk,
        ),
        using=using,
    )


def notify_on_submission_submitted(submission_id, using=DEFAULT_DB_ALIAS):
    """Notify the leader of the submitting student's group"""
    submission = Submission.objects.using(using).get(pk=submission_id)

    group = Group.for_student(submission.student_id, using=using)
    if group is None or group.leader_id is None:
        raise MissingGroupAssignment(submission.student_id)

    return create_notification(
        StaffParams(
            type=NotificationType.SUBMITTED,
            user_id=group.leader_id,
            read=False,
            submission_id=submission.pk,
            assessment_id=submission.assessment_id,
        ),
        using=using,
    )


# ===== Cohort broadcasts =====

def _broadcast(assessment, notification_type, recipient_ids, using):
    """
    Create one student notification per recipient inside a single transaction.

    The first recipient that fails validation or the insert aborts the batch
    and nothing from it is kept.
    """
    staged = {}
    connection = connections[using]
    try:
        try:
            with transaction.atomic(using=using):
                for user_id in recipient_ids:
                    key = f"notification_{user_id}"
                    if key in staged:
                        continue
                    try:
                        notification = validate_notification(
                            StudentParams(
                                type=notification_type,
                                user_id=user_id,
                                read=False,
                                assessment_id=assessment.pk,
                            ),
                            using=using,
                        )
                        notification.save(using=using)
                        # Foreign keys are deferred until commit; check them while the recipient is known
                        connection.check_constraints(table_names=[Notification._meta.db_table])
                    except (NotificationValidationError, IntegrityError) as exc:
                        raise BatchError(user_id, exc) from exc
                    staged[key] = notification
        except IntegrityError as exc:
            # Raised on commit, no single recipient to blame
            raise BatchError(None, exc) from exc
    except BatchError as exc:
        logger.warning(
            "Rolled back %s broadcast for assessment %s at user %s: %s",
            notification_type, assessment.pk, exc.failing_user_id, exc.cause,
        )
        raise

    logger.info(
        "Created %d %s notifications for assessment %s",
        len(staged), notification_type, assessment.pk,
    )
    return BatchResult(created_count=len(staged))


def broadcast_new_assessment(assessment_id, using=DEFAULT_DB_ALIAS):
    """Notify every student that an assessment has opened"""
    assessment = Assessment.objects.using(using).get(pk=assessment_id)

    if not assessment.is_open():
        logger.info("Assessment %s is not open, skipping broadcast", assessment.pk)
        return BatchResult(created_count=0)

    student_ids = User.objects.using(using).filter(
        role='student'
    ).order_by('id').values_list('id', flat=True)

    return _broadcast(assessment, NotificationType.NEW, student_ids, using)


def broadcast_deadline_reminder(assessment_id, using=DEFAULT_DB_ALIAS):
    """Remind every student who has not yet submitted an open assessment"""
    assessment = Assessment.objects.using(using).get(pk=assessment_id)

    if not assessment.is_open():
        logger.info("Assessment %s is not open, skipping deadline reminder", assessment.pk)
        return BatchResult(created_count=0)

    submitted_ids = Submission.objects.using(using).filter(
        assessment_id=assessment.pk,
        status='submitted',
    ).values_list('student_id', flat=True)

    student_ids = User.objects.using(using).filter(
        role='student'
    ).exclude(id__in=submitted_ids).order_by('id').values_list('id', flat=True)

    return _broadcast(assessment, NotificationType.DEADLINE, student_ids, using)


def send_deadline_reminders(hours=None, using=DEFAULT_DB_ALIAS):
    """
    Run the deadline reminder broadcast for every assessment closing within
    ``hours`` (defaults to NOTIFICATION_DEADLINE_WINDOW_HOURS).

    Each assessment is its own batch: a failed broadcast is rolled back on
    its own and does not stop the others. Returns a list of
    (assessment, BatchResult or BatchError) pairs.
    """
    if hours is None:
        hours = settings.NOTIFICATION_DEADLINE_WINDOW_HOURS

    now = timezone.now()
    closing = Assessment.objects.using(using).filter(
        is_published=True,
        close_at__gt=now,
        close_at__lte=now + timedelta(hours=hours),
    ).order_by('close_at', 'id')

    results = []
    for assessment in closing:
        try:
            result = broadcast_deadline_reminder(assessment.pk, using=using)
        except BatchError as exc:
            result = exc
        results.append((assessment, result))
    return results


# ===== Read state =====

def fetch_unread(user_id, using=DEFAULT_DB_ALIAS):
    """Snapshot of the user's unread notifications, oldest first"""
    return list(Notification.objects.using(using).unread_for(user_id))


def acknowledge(notification_id, user_id, role, using=DEFAULT_DB_ALIAS):
    """
    Mark one of the user's notifications as read.

    The lookup is restricted to the user's own notifications, so another
    user's id is indistinguishable from a missing one. Acknowledging an
    already-read notification re-validates and returns it unchanged.
    """
    notification = Notification.objects.using(using).owned_by(user_id).filter(
        pk=notification_id
    ).first()
    if notification is None:
        raise NotificationNotFound()

    validate_notification(
        build_params(
            role,
            type=notification.type,
            read=True,
            user_id=notification.user_id,
            assessment_id=notification.assessment_id,
            submission_id=notification.submission_id,
            question_id=notification.question_id,
        ),
        using=using,
    )

    if not notification.read:
        notification.read = True
        notification.save(using=using, update_fields=['read', 'updated_at'])
    return notification
