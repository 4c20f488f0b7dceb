"""Relational backend on the Django ORM (Postgres in production, SQLite in tests)."""
import logging
from datetime import date, datetime

from django.db.models import Count, IntegerField, OuterRef, Subquery, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from journal.attachments import normalize_attachments

from ..daykey import assert_day_key, to_iso
from ..models import Day, JournalEntry, MealEntry, SleepEntry, WeightEntry, WorkoutEntry
from .base import (
    DayRepository,
    JournalRepository,
    MealRepository,
    Record,
    RecordNotFound,
    SleepRepository,
    Store,
    WeightRepository,
    WorkoutRepository,
    camel,
)

logger = logging.getLogger(__name__)


def _value(v):
    if isinstance(v, datetime):
        return to_iso(v)
    if isinstance(v, date):
        return v.isoformat()
    return v


def _child_count(model):
    rows = (
        model.objects.filter(owner_key=OuterRef("owner_key"), day_key=OuterRef("day_key"))
        .order_by()
        .values("owner_key")
        .annotate(n=Count("id"))
        .values("n")
    )
    return Coalesce(Subquery(rows, output_field=IntegerField()), Value(0))


def day_to_record(day) -> Record:
    fields = {
        "ownerKey": day.owner_key,
        "dayKey": day.day_key,
        "dayDate": _value(day.day_date),
        "weightCount": getattr(day, "weight_count", 0) or 0,
        "sleepCount": getattr(day, "sleep_count", 0) or 0,
        "mealCount": getattr(day, "meal_count", 0) or 0,
        "workoutCount": getattr(day, "workout_count", 0) or 0,
        "updatedAt": _value(day.updated_at),
    }
    return Record(id=day.id, created_at=_value(day.created_at), fields=fields)


class RelationalDayRepository(DayRepository):
    def _counted(self):
        return Day.objects.annotate(
            weight_count=_child_count(WeightEntry),
            sleep_count=_child_count(SleepEntry),
            meal_count=_child_count(MealEntry),
            workout_count=_child_count(WorkoutEntry),
        )

    def find(self, owner_key, day_key):
        day = self._counted().filter(owner_key=owner_key, day_key=day_key).first()
        return day_to_record(day) if day else None

    def upsert(self, owner_key, day_key, day_date=None):
        assert_day_key(day_key)
        row = Day(
            owner_key=owner_key,
            day_key=day_key,
            day_date=date.fromisoformat(day_date or day_key),
            updated_at=timezone.now(),
        )
        # concurrent first writers converge on the same (owner, day) row
        Day.objects.bulk_create(
            [row],
            update_conflicts=True,
            unique_fields=["owner_key", "day_key"],
            update_fields=["day_date", "updated_at"],
        )
        return Day.objects.values_list("id", flat=True).get(owner_key=owner_key, day_key=day_key)

    def list_by_range(self, owner_key, start_inclusive, end_exclusive):
        days = self._counted().filter(
            owner_key=owner_key,
            day_key__gte=start_inclusive,
            day_key__lt=end_exclusive,
        ).order_by("day_date")
        return [day_to_record(d) for d in days]


class ModelRepository:
    """Row <-> Record mapping and patching shared by the per-day log tables."""

    model = None
    columns = ()
    order_by = ()

    def to_record(self, obj) -> Record:
        fields = {
            "ownerKey": obj.owner_key,
            "dayRef": [obj.day_id] if obj.day_id else [],
            "dayKey": obj.day_key,
        }
        for name in self.columns:
            value = getattr(obj, name)
            if value is not None:
                fields[camel(name)] = _value(value)
        return Record(id=obj.id, created_at=_value(obj.created_at), fields=fields)

    def _get(self, record_id):
        try:
            return self.model.objects.get(pk=record_id)
        except self.model.DoesNotExist:
            raise RecordNotFound(self.kind, record_id)

    def create(self, **fields):
        obj = self.model.objects.create(**fields)
        return self.to_record(obj)

    def update(self, record_id, patch):
        obj = self._get(record_id)
        for name, value in patch.items():
            setattr(obj, name, value)
        obj.save()
        return self.to_record(obj)

    def _for_day(self, owner_key, day_key):
        return self.model.objects.filter(owner_key=owner_key, day_key=day_key)


class SingleDayMixin(ModelRepository):
    def find(self, owner_key, day_key):
        obj = self._for_day(owner_key, day_key).order_by("-created_at").first()
        return self.to_record(obj) if obj else None

    def delete_by_day(self, owner_key, day_key):
        deleted, _ = self._for_day(owner_key, day_key).delete()
        if deleted:
            logger.info("Deleted %s for %s/%s", self.kind.lower(), owner_key, day_key)

    def list_by_range(self, owner_key, start_inclusive, end_exclusive):
        rows = self.model.objects.filter(
            owner_key=owner_key,
            day_key__gte=start_inclusive,
            day_key__lt=end_exclusive,
        ).order_by("day_key")
        return [self.to_record(r) for r in rows]


class MultiDayMixin(ModelRepository):
    def list_by_day(self, owner_key, day_key):
        return [self.to_record(r) for r in self._for_day(owner_key, day_key).order_by(*self.order_by)]

    def get(self, record_id):
        return self.to_record(self._get(record_id))

    def delete(self, record_id):
        self._get(record_id).delete()


class RelationalWeightRepository(SingleDayMixin, WeightRepository):
    model = WeightEntry
    columns = ("recorded_at", "weight_kg", "body_fat_pct", "note")


class RelationalSleepRepository(SingleDayMixin, SleepRepository):
    model = SleepEntry
    columns = ("sleep_start_at", "sleep_end_at", "duration_min", "quality", "note")


class RelationalMealRepository(MultiDayMixin, MealRepository):
    model = MealEntry
    columns = ("eaten_at", "meal_type", "text", "items_json", "calories_kcal", "note", "ai_assisted")
    order_by = ("eaten_at", "created_at")


class RelationalWorkoutRepository(MultiDayMixin, WorkoutRepository):
    model = WorkoutEntry
    columns = ("performed_at", "workout_type", "duration_min", "intensity", "detail", "ai_assisted")
    order_by = ("performed_at", "created_at")

    def list_by_owner(self, owner_key, limit=50):
        rows = WorkoutEntry.objects.filter(owner_key=owner_key).order_by("-performed_at")[:limit]
        return [self.to_record(r) for r in rows]


def journal_to_record(entry) -> Record:
    fields = {
        "ownerKey": entry.owner_key,
        "title": entry.title,
        "details": entry.details,
        "attach": normalize_attachments(entry.attach),
        "updatedAt": _value(entry.updated_at),
    }
    return Record(id=entry.id, created_at=_value(entry.created_at), fields=fields)


class RelationalJournalRepository(JournalRepository):
    def list(self, owner_key, limit=50, offset=0):
        rows = JournalEntry.objects.filter(owner_key=owner_key).order_by("-updated_at")[offset:offset + limit]
        return [journal_to_record(r) for r in rows]

    def get(self, owner_key, entry_id):
        entry = JournalEntry.objects.filter(owner_key=owner_key, pk=entry_id).first()
        return journal_to_record(entry) if entry else None

    def create(self, owner_key, title, details, attach):
        entry = JournalEntry.objects.create(owner_key=owner_key, title=title, details=details, attach=attach)
        return journal_to_record(entry)

    def update(self, owner_key, entry_id, title, details, attach):
        entry = JournalEntry.objects.filter(owner_key=owner_key, pk=entry_id).first()
        if entry is None:
            raise RecordNotFound(self.kind, entry_id)
        entry.title = title
        entry.details = details
        entry.attach = attach
        entry.save()
        return journal_to_record(entry)

    def delete(self, owner_key, entry_id):
        deleted, _ = JournalEntry.objects.filter(owner_key=owner_key, pk=entry_id).delete()
        if not deleted:
            raise RecordNotFound(self.kind, entry_id)


def build_relational_store() -> Store:
    return Store(
        name="relational",
        days=RelationalDayRepository(),
        weights=RelationalWeightRepository(),
        sleeps=RelationalSleepRepository(),
        meals=RelationalMealRepository(),
        workouts=RelationalWorkoutRepository(),
        journal=RelationalJournalRepository(),
    )
