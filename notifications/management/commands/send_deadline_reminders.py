"""
Scheduled command: remind students about assessments that close soon.

Intended to run from cron. Every run creates new reminders; it does not
remember which assessments were already announced.
"""

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from notifications.exceptions import BatchError
from notifications.utils import send_deadline_reminders


class Command(BaseCommand):
    help = "Send deadline reminders for open assessments closing soon"

    def add_arguments(self, parser):
        parser.add_argument(
            '--hours',
            type=int,
            default=None,
            help=(
                "Look-ahead window in hours "
                f"(default: NOTIFICATION_DEADLINE_WINDOW_HOURS = {settings.NOTIFICATION_DEADLINE_WINDOW_HOURS})"
            ),
        )

    def handle(self, *args, **options):
        now = timezone.now()

        self.stdout.write(
            self.style.NOTICE(
                f"[{now:%Y-%m-%d %H:%M:%S}] Starting deadline reminders"
            )
        )

        results = send_deadline_reminders(hours=options['hours'])

        total = 0
        failed = 0
        for assessment, result in results:
            if isinstance(result, BatchError):
                failed += 1
                self.stdout.write(self.style.ERROR(f"  {assessment.title}: failed ({result})"))
                continue
            total += result.created_count
            self.stdout.write(f"  {assessment.title}: {result.created_count} reminder(s)")

        self.stdout.write(
            self.style.SUCCESS(
                f"[{now:%Y-%m-%d %H:%M:%S}] Completed: "
                f"{total} reminders for {len(results) - failed} assessment(s)"
            )
        )

        if failed:
            raise CommandError(f"{failed} deadline reminder broadcast(s) rolled back")
