"""
Lifecycle signals sent by the grading pipeline and assessment management.

Senders pass the affected object's id as a keyword argument; receivers live
in the apps that react to them (see notifications.signals).
"""
from django.dispatch import Signal

# kwargs: answer_id
answer_graded = Signal()

# kwargs: submission_id
submission_graded = Signal()

# kwargs: submission_id
submission_submitted = Signal()

# kwargs: assessment_id
assessment_published = Signal()
