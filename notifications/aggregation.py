"""
Submission-level completion checks used to gate grading notifications.

A submission is treated as one unit: a single lagging answer holds back the
notification for the whole submission.
"""
from django.db import DEFAULT_DB_ALIAS

from assessments.models import Answer, Question, Submission

PENDING_AUTOGRADING = (
    Answer.AutogradingStatus.NONE,
    Answer.AutogradingStatus.PROCESSING,
)


def is_fully_autograded(submission_id, using=DEFAULT_DB_ALIAS):
    """True when no answer of the submission is still waiting for the autograder."""
    statuses = Answer.objects.using(using).filter(
        submission_id=submission_id
    ).values_list('autograding_status', flat=True)
    return not any(status in PENDING_AUTOGRADING for status in statuses)


def is_fully_manually_graded(submission_id, using=DEFAULT_DB_ALIAS):
    """
    True when the number of graded answers equals the number of questions in
    the submission's assessment.

    Questions added or removed after the submission was created can make the
    counts match early or never; that approximation is accepted here.
    """
    submission = Submission.objects.using(using).only('assessment_id').get(pk=submission_id)
    question_count = Question.objects.using(using).filter(
        assessment_id=submission.assessment_id
    ).count()
    graded_count = Answer.objects.using(using).filter(
        submission_id=submission_id,
        grader__isnull=False,
    ).count()
    return question_count == graded_count
