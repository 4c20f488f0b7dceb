from django.core.management.base import BaseCommand

from logbook.backends import get_store
from logbook.conf import backend_config_hint, get_app_tz, get_owner_key, now_utc
from logbook.daykey import month_bounds, to_day_key


class Command(BaseCommand):
    help = 'Report which storage backend is active and try a read against it'

    def add_arguments(self, parser):
        parser.add_argument(
            '--month',
            type=str,
            help='Month to read (YYYY-MM), defaults to the current one',
        )

    def handle(self, *args, **options):
        store = get_store()
        self.stdout.write(f"Owner: {get_owner_key()}  Timezone: {get_app_tz()}")

        if store is None:
            self.stdout.write(self.style.WARNING("No storage backend configured"))
            self.stdout.write(backend_config_hint())
            return

        self.stdout.write(f"Backend: {store.name} ({backend_config_hint()})")

        month = options['month'] or to_day_key(now_utc(), get_app_tz())[:7]
        start, end = month_bounds(month)
        try:
            days = store.days.list_by_range(get_owner_key(), start, end)
        except Exception as e:
            self.stdout.write(self.style.ERROR(f"Read failed: {e}"))
            return

        self.stdout.write(self.style.SUCCESS(f"Read OK: {len(days)} day(s) in {month}"))
        for day in days:
            f = day.fields
            self.stdout.write(
                f"  {f.get('dayKey')}  weight={f.get('weightCount', 0)} sleep={f.get('sleepCount', 0)} "
                f"meal={f.get('mealCount', 0)} workout={f.get('workoutCount', 0)}"
            )
