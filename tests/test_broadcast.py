"""
Tests for the all-or-nothing cohort broadcasts.
"""

from datetime import timedelta
from io import StringIO
from unittest.mock import MagicMock, patch

from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import IntegrityError
from django.test import TestCase, TransactionTestCase, override_settings
from django.utils import timezone

from notifications.exceptions import BatchError, ForeignKeyViolation
from notifications.models import Notification, NotificationType
from notifications.utils import (
    BatchResult,
    broadcast_deadline_reminder,
    broadcast_new_assessment,
    send_deadline_reminders,
)
from notifications.validators import validate_notification
from tests.factories import make_assessment, make_submission, make_user


class BroadcastNewAssessmentTests(TestCase):

    def setUp(self):
        self.students = [make_user('student') for _ in range(4)]
        self.staff = make_user('staff')

    def test_unpublished_assessment_is_a_no_op(self):
        assessment = make_assessment(is_published=False)

        result = broadcast_new_assessment(assessment.id)

        self.assertEqual(result, BatchResult(created_count=0))
        self.assertEqual(Notification.objects.count(), 0)

    def test_assessment_opening_in_future_is_a_no_op(self):
        assessment = make_assessment(open_at=timezone.now() + timedelta(days=1))

        result = broadcast_new_assessment(assessment.id)

        self.assertEqual(result.created_count, 0)
        self.assertEqual(Notification.objects.count(), 0)

    def test_open_assessment_notifies_every_student_once(self):
        assessment = make_assessment(open_at=timezone.now() - timedelta(hours=1))

        result = broadcast_new_assessment(assessment.id)

        self.assertEqual(result.created_count, len(self.students))
        notifications = Notification.objects.filter(assessment=assessment)
        self.assertEqual(
            sorted(notifications.values_list('user_id', flat=True)),
            sorted(student.id for student in self.students),
        )
        self.assertTrue(all(n.type == NotificationType.NEW for n in notifications))
        self.assertFalse(notifications.filter(read=True).exists())
        self.assertFalse(notifications.filter(user=self.staff).exists())

    def test_validation_failure_on_last_student_rolls_back_batch(self):
        assessment = make_assessment()
        last = self.students[-1]

        def failing_validate(params, using='default'):
            if params.user_id == last.id:
                raise ForeignKeyViolation('user_id', params.user_id)
            return validate_notification(params, using=using)

        with patch('notifications.utils.validate_notification', side_effect=failing_validate):
            with self.assertRaises(BatchError) as ctx:
                broadcast_new_assessment(assessment.id)

        self.assertEqual(ctx.exception.failing_user_id, last.id)
        self.assertIsInstance(ctx.exception.cause, ForeignKeyViolation)
        self.assertEqual(Notification.objects.count(), 0)

    def test_insert_failure_on_last_student_rolls_back_batch(self):
        assessment = make_assessment()
        last = self.students[-1]
        original_save = Notification.save

        def failing_save(instance, *args, **kwargs):
            if instance.user_id == last.id:
                raise IntegrityError("simulated insert failure")
            return original_save(instance, *args, **kwargs)

        with patch.object(Notification, 'save', autospec=True, side_effect=failing_save):
            with self.assertRaises(BatchError) as ctx:
                broadcast_new_assessment(assessment.id)

        self.assertEqual(ctx.exception.failing_user_id, last.id)
        self.assertIsInstance(ctx.exception.cause, IntegrityError)
        self.assertEqual(Notification.objects.count(), 0)

    def test_retry_after_failure_creates_full_batch(self):
        assessment = make_assessment()

        with patch('notifications.utils.validate_notification',
                   side_effect=ForeignKeyViolation('user_id', 0)):
            with self.assertRaises(BatchError):
                broadcast_new_assessment(assessment.id)

        result = broadcast_new_assessment(assessment.id)

        self.assertEqual(result.created_count, len(self.students))


class DeadlineReminderTests(TestCase):

    def setUp(self):
        self.submitted = make_user('student')
        self.attempting = make_user('student')
        self.absent = make_user('student')

    def test_skips_students_who_submitted(self):
        assessment = make_assessment(close_at=timezone.now() + timedelta(hours=2))
        make_submission(assessment, self.submitted, status='submitted')
        make_submission(assessment, self.attempting, status='attempting')

        result = broadcast_deadline_reminder(assessment.id)

        self.assertEqual(result.created_count, 2)
        self.assertEqual(
            set(Notification.objects.values_list('user_id', flat=True)),
            {self.attempting.id, self.absent.id},
        )
        self.assertTrue(
            all(n.type == NotificationType.DEADLINE for n in Notification.objects.all())
        )

    def test_closed_assessment_is_a_no_op(self):
        assessment = make_assessment(is_published=False)

        self.assertEqual(broadcast_deadline_reminder(assessment.id).created_count, 0)
        self.assertFalse(Notification.objects.exists())

    @override_settings(NOTIFICATION_DEADLINE_WINDOW_HOURS=24)
    def test_only_assessments_closing_within_window(self):
        now = timezone.now()
        soon = make_assessment(close_at=now + timedelta(hours=3))
        make_assessment(close_at=now + timedelta(days=3))
        make_assessment(close_at=now - timedelta(hours=1))

        results = send_deadline_reminders()

        self.assertEqual([assessment.id for assessment, _ in results], [soon.id])
        self.assertEqual(Notification.objects.filter(assessment=soon).count(), 3)
        self.assertEqual(Notification.objects.count(), 3)

    def test_management_command(self):
        now = timezone.now()
        soon = make_assessment(title='Rune Trials', close_at=now + timedelta(hours=10))
        make_assessment(close_at=now + timedelta(hours=30))
        out = StringIO()

        call_command('send_deadline_reminders', '--hours', '12', stdout=out)

        self.assertIn('Rune Trials: 3 reminder(s)', out.getvalue())
        self.assertIn('3 reminders for 1 assessment(s)', out.getvalue())
        self.assertEqual(Notification.objects.filter(assessment=soon).count(), 3)
        self.assertEqual(Notification.objects.count(), 3)

    def test_failed_assessment_does_not_stop_later_ones(self):
        now = timezone.now()
        first = make_assessment(title='Rune Trials', close_at=now + timedelta(hours=2))
        second = make_assessment(title='Beyond the Second Dimension', close_at=now + timedelta(hours=4))
        original = broadcast_deadline_reminder

        def failing_first(assessment_id, using='default'):
            if assessment_id == first.id:
                raise BatchError(self.absent.id, ForeignKeyViolation('user_id', self.absent.id))
            return original(assessment_id, using=using)

        with patch('notifications.utils.broadcast_deadline_reminder', side_effect=failing_first):
            results = send_deadline_reminders(hours=12)

        self.assertEqual([assessment.id for assessment, _ in results], [first.id, second.id])
        self.assertIsInstance(results[0][1], BatchError)
        self.assertEqual(results[1][1], BatchResult(created_count=3))
        self.assertFalse(Notification.objects.filter(assessment=first).exists())
        self.assertEqual(Notification.objects.filter(assessment=second).count(), 3)

    def test_management_command_reports_every_assessment_before_failing(self):
        now = timezone.now()
        first = make_assessment(title='Rune Trials', close_at=now + timedelta(hours=2))
        make_assessment(title='Beyond the Second Dimension', close_at=now + timedelta(hours=4))
        original = broadcast_deadline_reminder
        out = StringIO()

        def failing_first(assessment_id, using='default'):
            if assessment_id == first.id:
                raise BatchError(self.absent.id, ForeignKeyViolation('user_id', self.absent.id))
            return original(assessment_id, using=using)

        with patch('notifications.utils.broadcast_deadline_reminder', side_effect=failing_first):
            with self.assertRaises(CommandError):
                call_command('send_deadline_reminders', '--hours', '12', stdout=out)

        self.assertIn('Rune Trials: failed', out.getvalue())
        self.assertIn('Beyond the Second Dimension: 3 reminder(s)', out.getvalue())
        self.assertIn('3 reminders for 1 assessment(s)', out.getvalue())


class BroadcastCommitTests(TransactionTestCase):
    """Foreign keys are only enforced at commit, so these run outside a test transaction."""

    def setUp(self):
        self.students = [make_user('student') for _ in range(3)]
        self.assessment = make_assessment()

    def test_recipient_removed_before_insert_is_reported(self):
        last = self.students[-1]

        def stale_validate(params, using='default'):
            notification = validate_notification(params, using=using)
            if params.user_id == last.id:
                # The recipient disappeared between the existence check and the insert
                notification.user_id = 999999
            return notification

        with patch('notifications.utils.validate_notification', side_effect=stale_validate):
            with self.assertRaises(BatchError) as ctx:
                broadcast_new_assessment(self.assessment.id)

        self.assertEqual(ctx.exception.failing_user_id, last.id)
        self.assertIsInstance(ctx.exception.cause, IntegrityError)
        self.assertEqual(Notification.objects.count(), 0)

    def test_commit_time_failure_is_a_batch_error(self):
        last = self.students[-1]

        def stale_validate(params, using='default'):
            notification = validate_notification(params, using=using)
            if params.user_id == last.id:
                notification.user_id = 999999
            return notification

        # Without the per-recipient check the violation only surfaces on commit
        with patch('notifications.utils.validate_notification', side_effect=stale_validate), \
                patch('notifications.utils.connections', {'default': MagicMock()}):
            with self.assertRaises(BatchError) as ctx:
                broadcast_new_assessment(self.assessment.id)

        self.assertIsNone(ctx.exception.failing_user_id)
        self.assertIsInstance(ctx.exception.cause, IntegrityError)
        self.assertEqual(Notification.objects.count(), 0)
