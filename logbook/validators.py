"""
Input schemas for every record kind.

Each schema is a plain Django form; ``validate`` runs it over a mapping and
either returns the cleaned values or raises a ``ValidationError`` whose
``error_dict`` carries the per-field messages.
"""
import json

from django import forms
from django.core.exceptions import ValidationError
from django.core.validators import RegexValidator

from .calc import MAX_DURATION_MIN
from .conf import get_app_tz
from .daykey import DAY_KEY_RE, assert_day_key, parse_instant

MEAL_TYPES = ["Breakfast", "Lunch", "Dinner", "Snack"]
WORKOUT_TYPES = ["Run", "Walk", "Gym", "Yoga", "Other"]
INTENSITIES = ["Low", "Medium", "High"]
SLEEP_QUALITIES = ["Poor", "Fair", "Good", "Great"]

JOURNAL_MAX_ATTACHMENTS = 20


class DayKeyField(forms.CharField):
    default_validators = [RegexValidator(DAY_KEY_RE, "dayKey must be YYYY-MM-DD")]

    def clean(self, value):
        value = super().clean(value)
        if value:
            assert_day_key(value)
        return value


class InstantField(forms.CharField):
    """ISO-8601 timestamp; values without an offset are local to APP_TZ."""

    def to_python(self, value):
        if value in self.empty_values:
            return None
        try:
            return parse_instant(value, get_app_tz())
        except ValidationError:
            raise ValidationError("Invalid datetime", code="invalid")

    def clean(self, value):
        value = self.to_python(value)
        if value is None and self.required:
            raise ValidationError("datetime is required", code="required")
        return value


def owner_key_field(required=True):
    return forms.CharField(min_length=1, max_length=64, required=required)


def optional_text(max_length):
    return forms.CharField(max_length=max_length, required=False)


class WeightInputForm(forms.Form):
    owner_key = owner_key_field()
    day_key = DayKeyField()
    recorded_at = InstantField()
    weight_kg = forms.FloatField(min_value=20, max_value=300)
    body_fat_pct = forms.FloatField(min_value=1, max_value=80, required=False)
    note = optional_text(500)


class SleepInputForm(forms.Form):
    owner_key = owner_key_field()
    day_key = DayKeyField()
    sleep_start_at = InstantField()
    sleep_end_at = InstantField()
    duration_min = forms.IntegerField(min_value=0, max_value=MAX_DURATION_MIN)
    quality = optional_text(32)
    note = optional_text(500)


class MealInputForm(forms.Form):
    owner_key = owner_key_field()
    day_key = DayKeyField()
    eaten_at = InstantField()
    meal_type = forms.CharField(min_length=1, max_length=32)
    text = forms.CharField(min_length=1, max_length=2000)
    items_json = forms.CharField(max_length=20000, required=False, strip=False)
    calories_kcal = forms.FloatField(min_value=0, max_value=10000, required=False)
    note = optional_text(500)
    ai_assisted = forms.NullBooleanField(required=False)

    def clean_items_json(self):
        raw = self.cleaned_data.get("items_json")
        if raw in (None, ""):
            return raw
        try:
            json.loads(raw)
        except ValueError:
            raise ValidationError("itemsJson must be valid JSON", code="invalid_json")
        return raw


class WorkoutInputForm(forms.Form):
    owner_key = owner_key_field()
    day_key = DayKeyField()
    performed_at = InstantField()
    workout_type = forms.CharField(min_length=1, max_length=64)
    duration_min = forms.IntegerField(min_value=0, max_value=MAX_DURATION_MIN)
    intensity = optional_text(32)
    detail = optional_text(2000)
    ai_assisted = forms.NullBooleanField(required=False)


def _partial(form_class):
    """Same fields as ``form_class`` with nothing required."""

    class PartialForm(form_class):
        def __init__(self, *args, **kwargs):
            super().__init__(*args, **kwargs)
            for field in self.fields.values():
                field.required = False

    PartialForm.__name__ = f"Partial{form_class.__name__}"
    return PartialForm


MealPatchForm = _partial(MealInputForm)
WorkoutPatchForm = _partial(WorkoutInputForm)


class AttachmentForm(forms.Form):
    url = forms.URLField(max_length=2000, assume_scheme="https")
    name = optional_text(200)
    mime = optional_text(100)

    def clean_url(self):
        url = self.cleaned_data["url"]
        if not url.lower().startswith(("http://", "https://")):
            raise ValidationError("url must be http(s)", code="invalid_scheme")
        return url


class JournalInputForm(forms.Form):
    owner_key = owner_key_field()
    title = forms.CharField(min_length=1, max_length=200)
    details = forms.CharField(min_length=1, max_length=20000, strip=False)
    # list of {"url", "name"?, "mime"?} dicts, already normalised
    attach = forms.Field(required=False)

    def clean_attach(self):
        items = self.cleaned_data.get("attach") or []
        if not isinstance(items, list):
            raise ValidationError("attach must be a list", code="invalid")
        if len(items) > JOURNAL_MAX_ATTACHMENTS:
            raise ValidationError(
                f"at most {JOURNAL_MAX_ATTACHMENTS} attachments", code="max_length"
            )

        attach, errors = [], []
        for i, item in enumerate(items):
            form = AttachmentForm(item if isinstance(item, dict) else {"url": item})
            if not form.is_valid():
                for field, messages in form.errors.items():
                    errors.extend(f"{i}.{field}: {m}" for m in messages)
                continue
            entry = {"url": form.cleaned_data["url"]}
            if form.cleaned_data.get("name"):
                entry["name"] = form.cleaned_data["name"]
            if form.cleaned_data.get("mime"):
                entry["mime"] = form.cleaned_data["mime"]
            attach.append(entry)

        if errors:
            raise ValidationError(errors)
        return attach


def validate(form_class, data, partial=False, **kwargs):
    """
    Run ``form_class`` over ``data`` and return the cleaned values.

    With ``partial`` only keys present in ``data`` come back, so a patch never
    blanks out fields the caller did not send.
    """
    form = form_class(data, **kwargs)
    if not form.is_valid():
        raise ValidationError(form.errors.as_data())

    cleaned = form.cleaned_data
    if partial:
        cleaned = {k: v for k, v in cleaned.items() if k in data}
    return cleaned
