from django.core.cache import cache
from django.core.management.base import BaseCommand
from django.utils import timezone

from clinicadmin.models import Clinic
from clinicadmin.services.notify import broadcast
from clinicadmin.services.reception import department_cache_key, load_departments


class Command(BaseCommand):
    help = "Warm the reception lookup caches and broadcast a WebSocket refresh event."

    def handle(self, *args, **options):
        now = timezone.now()
        keys_refreshed = []

        for clinic_id in [None, *Clinic.objects.alive().values_list('id', flat=True)]:
            key = department_cache_key(clinic_id)
            cache.delete(key)
            load_departments(clinic_id)
            keys_refreshed.append(key)

        broadcast('broadcast.refresh', {
            'version': int(now.timestamp()),
            'ts': now.isoformat(),
            'keys': keys_refreshed[:50],
        })
        self.stdout.write(self.style.SUCCESS(f"Refreshed {len(keys_refreshed)} keys at {now}"))
