from datetime import timedelta

from django.conf import settings
from django.core.management.base import BaseCommand

from registrations.store import prune_pending_uploads


class Command(BaseCommand):
    help = "Delete pending registration uploads left behind by abandoned drafts"

    def add_arguments(self, parser):
        parser.add_argument('--hours', type=int, default=settings.PENDING_UPLOAD_MAX_AGE_HOURS,
                            help="Minimum age of the files to delete")

    def handle(self, *args, **options):
        removed = prune_pending_uploads(timedelta(hours=options['hours']))
        self.stdout.write(self.style.SUCCESS(f"Removed {len(removed)} pending upload(s)"))
