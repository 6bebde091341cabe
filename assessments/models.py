from django.db import models
from django.utils import timezone
from authentication.models import User


class Assessment(models.Model):
    TYPE_CHOICES = [
        ('mission', 'Mission'),
        ('sidequest', 'Sidequest'),
        ('path', 'Path'),
        ('contest', 'Contest'),
    ]

    title = models.CharField(max_length=200)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='mission')
    is_published = models.BooleanField(default=False)
    open_at = models.DateTimeField(null=True, blank=True, help_text="Date when the assessment becomes visible to students")
    close_at = models.DateTimeField(null=True, blank=True, help_text="Submission deadline")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['open_at', 'created_at']

    def __str__(self):
        return self.title

    def is_open(self):
        """Check if the assessment is published and its opening time has passed"""
        if not self.is_published:
            return False
        if self.open_at:
            return timezone.now() >= self.open_at
        return True


class Question(models.Model):
    assessment = models.ForeignKey(Assessment, on_delete=models.CASCADE, related_name='questions')
    display_order = models.IntegerField(default=0)
    max_grade = models.IntegerField(default=0)

    class Meta:
        ordering = ['display_order', 'id']

    def __str__(self):
        return f"{self.assessment.title} - Q{self.display_order}"


class Submission(models.Model):
    STATUS_CHOICES = [
        ('attempting', 'Attempting'),
        ('attempted', 'Attempted'),
        ('submitted', 'Submitted'),
    ]

    assessment = models.ForeignKey(Assessment, on_delete=models.CASCADE, related_name='submissions')
    student = models.ForeignKey(User, on_delete=models.CASCADE, related_name='submissions')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='attempting')
    submitted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ['assessment', 'student']
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.student.username} - {self.assessment.title}"


class Answer(models.Model):
    class AutogradingStatus(models.TextChoices):
        NONE = 'none', 'None'
        PROCESSING = 'processing', 'Processing'
        SUCCESS = 'success', 'Success'
        FAILED = 'failed', 'Failed'

    submission = models.ForeignKey(Submission, on_delete=models.CASCADE, related_name='answers')
    question = models.ForeignKey(Question, on_delete=models.CASCADE, related_name='answers')
    autograding_status = models.CharField(
        max_length=20,
        choices=AutogradingStatus.choices,
        default=AutogradingStatus.NONE,
    )
    grade = models.IntegerField(default=0)
    grader = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True,
                               related_name='graded_answers')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ['submission', 'question']

    def __str__(self):
        return f"Answer {self.id} ({self.autograding_status})"
