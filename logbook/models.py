import uuid

from django.db import models


def new_id():
    return str(uuid.uuid4())


class Day(models.Model):
    id = models.CharField(primary_key=True, max_length=64, default=new_id, editable=False)
    owner_key = models.CharField(max_length=64, default="default")
    day_key = models.CharField(max_length=10)  # YYYY-MM-DD, local to APP_TZ
    day_date = models.DateField()

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "days"
        constraints = [
            models.UniqueConstraint(fields=["owner_key", "day_key"], name="days_owner_day_key_uniq"),
        ]

    def __str__(self):
        return f"{self.owner_key}/{self.day_key}"


class DayChild(models.Model):
    """Columns shared by every per-day log table."""

    id = models.CharField(primary_key=True, max_length=64, default=new_id, editable=False)
    owner_key = models.CharField(max_length=64, default="default")
    day = models.ForeignKey(Day, on_delete=models.CASCADE, db_column="day_id", related_name="+")
    day_key = models.CharField(max_length=10)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        abstract = True


class WeightEntry(DayChild):
    recorded_at = models.DateTimeField()
    weight_kg = models.FloatField()
    body_fat_pct = models.FloatField(null=True, blank=True)
    note = models.TextField(null=True, blank=True)

    class Meta:
        db_table = "weight_logs"
        indexes = [models.Index(fields=["owner_key", "day_key"], name="idx_weight_owner_day_key")]


class SleepEntry(DayChild):
    sleep_start_at = models.DateTimeField()
    sleep_end_at = models.DateTimeField()
    duration_min = models.IntegerField()
    quality = models.CharField(max_length=32, null=True, blank=True)
    note = models.TextField(null=True, blank=True)

    class Meta:
        db_table = "sleep_logs"
        indexes = [models.Index(fields=["owner_key", "day_key"], name="idx_sleep_owner_day_key")]


class MealEntry(DayChild):
    eaten_at = models.DateTimeField()
    meal_type = models.CharField(max_length=32)
    text = models.TextField()
    items_json = models.TextField(null=True, blank=True)
    calories_kcal = models.FloatField(null=True, blank=True)
    note = models.TextField(null=True, blank=True)
    ai_assisted = models.BooleanField(null=True)

    class Meta:
        db_table = "meal_logs"
        indexes = [models.Index(fields=["owner_key", "day_key"], name="idx_meal_owner_day_key")]


class WorkoutEntry(DayChild):
    performed_at = models.DateTimeField()
    workout_type = models.CharField(max_length=64)
    # minutes for cardio, reused as load/reps by some forms
    duration_min = models.IntegerField()
    intensity = models.CharField(max_length=32, null=True, blank=True)
    detail = models.TextField(null=True, blank=True)
    ai_assisted = models.BooleanField(null=True)

    class Meta:
        db_table = "workout_logs"
        indexes = [models.Index(fields=["owner_key", "day_key"], name="idx_workout_owner_day_key")]


class JournalEntry(models.Model):
    id = models.CharField(primary_key=True, max_length=64, default=new_id, editable=False)
    owner_key = models.CharField(max_length=64, default="default")
    title = models.CharField(max_length=200)
    details = models.TextField()
    attach = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "journal_entries"
        indexes = [models.Index(fields=["owner_key", "updated_at"], name="idx_journal_owner_updated")]

    def __str__(self):
        return self.title
