from django.db import models
from django.contrib.auth import get_user_model

User = get_user_model()


class NotificationType(models.TextChoices):
    NEW = 'new', 'New assessment'
    DEADLINE = 'deadline', 'Deadline'
    AUTOGRADED = 'autograded', 'Autograded'
    GRADED = 'graded', 'Manually graded'
    SUBMITTED = 'submitted', 'Submitted'


class NotificationQuerySet(models.QuerySet):
    def unread_for(self, user_id):
        return self.filter(user_id=user_id, read=False).order_by('created_at', 'id')

    def owned_by(self, user_id):
        return self.filter(user_id=user_id)


class Notification(models.Model):
    """
    A persisted record informing one user that an event occurred.

    Only ``read`` changes after creation. The recipient's role is not stored;
    it is passed to the validator to decide whether ``assessment`` (students)
    or ``submission`` (staff) is mandatory.
    """
    type = models.CharField(max_length=20, choices=NotificationType.choices)
    read = models.BooleanField(default=False, db_index=True)

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='notifications')
    assessment = models.ForeignKey('assessments.Assessment', on_delete=models.CASCADE,
                                   null=True, blank=True, related_name='notifications')
    submission = models.ForeignKey('assessments.Submission', on_delete=models.CASCADE,
                                   null=True, blank=True, related_name='notifications')
    # Only set by older trigger paths
    question = models.ForeignKey('assessments.Question', on_delete=models.CASCADE,
                                 null=True, blank=True, related_name='notifications')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = NotificationQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'read'], name='notification_user_read_idx'),
        ]

    def __str__(self):
        return f"{self.type} - {self.user_id} ({'read' if self.read else 'unread'})"
