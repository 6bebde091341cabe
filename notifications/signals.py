import logging

from django.dispatch import receiver

from assessments.signals import (
    answer_graded,
    assessment_published,
    submission_graded,
    submission_submitted,
)
from .utils import (
    broadcast_new_assessment,
    notify_on_answer_graded,
    notify_on_submission_graded,
    notify_on_submission_submitted,
)

logger = logging.getLogger(__name__)


@receiver(answer_graded, dispatch_uid='notifications.answer_graded')
def notify_student_on_answer_graded(sender, answer_id, **kwargs):
    return notify_on_answer_graded(answer_id)


@receiver(submission_graded, dispatch_uid='notifications.submission_graded')
def notify_student_on_submission_graded(sender, submission_id, **kwargs):
    return notify_on_submission_graded(submission_id)


@receiver(submission_submitted, dispatch_uid='notifications.submission_submitted')
def notify_leader_on_submission(sender, submission_id, **kwargs):
    return notify_on_submission_submitted(submission_id)


@receiver(assessment_published, dispatch_uid='notifications.assessment_published')
def notify_students_on_publish(sender, assessment_id, **kwargs):
    result = broadcast_new_assessment(assessment_id)
    logger.debug("Publish of assessment %s notified %d students", assessment_id, result.created_count)
    return result
