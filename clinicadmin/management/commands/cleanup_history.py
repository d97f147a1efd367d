from django.conf import settings
from django.core.management.base import BaseCommand

from clinicadmin.services.assignment_history import cleanup_old_history


class Command(BaseCommand):
    help = "Soft-delete assignment history older than the retention window."

    def add_arguments(self, parser):
        parser.add_argument('--days', type=int, default=settings.CLINIC_HISTORY_RETENTION_DAYS,
                            help='Archive entries older than this many days')

    def handle(self, *args, **options):
        count = cleanup_old_history(options['days'])
        self.stdout.write(self.style.SUCCESS(f"Archived {count} history entries older than {options['days']} days"))
