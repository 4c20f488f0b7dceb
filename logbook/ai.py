"""
AI assist: turn a free-text meal or workout note into suggested form values.

Suggestions are advisory. ``merge_assist`` only fills fields the user left
blank, it never overwrites what was typed.
"""
import json
import logging
import re

from django import forms
from django.conf import settings
from django.core.exceptions import ValidationError
from dotenv import load_dotenv
from openai import OpenAI, OpenAIError

from .conf import is_ai_configured
from .results import fail, ok, to_error_message
from .validators import INTENSITIES, MEAL_TYPES, WORKOUT_TYPES, validate

load_dotenv()

logger = logging.getLogger(__name__)

FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)


class AssistError(Exception):
    pass


def get_client():
    return OpenAI(api_key=settings.OPENAI_API_KEY, timeout=settings.AI_ASSIST_TIMEOUT)


def build_meal_prompt(text: str) -> str:
    return "\n".join([
        "You are a strict JSON generator.",
        "Return ONLY valid JSON. No markdown, no code fences, no extra keys.",
        "Schema:",
        '{ "mealType": "Breakfast|Lunch|Dinner|Snack", "items": ["string"], "notes": "string?" }',
        "Rules:",
        "- items must be an array of food/drink items extracted from the text.",
        "- If mealType cannot be inferred, omit mealType.",
        "- If there are useful notes (portion size, brand, etc.), put them in notes.",
        "",
        "Input text:",
        text,
    ])


def build_workout_prompt(text: str) -> str:
    return "\n".join([
        "You are a strict JSON generator.",
        "Return ONLY valid JSON. No markdown, no code fences, no extra keys.",
        "Schema:",
        '{ "workoutType": "Run|Walk|Gym|Yoga|Other", "durationMin": 30, '
        '"intensity": "Low|Medium|High", "detail": "string?" }',
        "Rules:",
        "- workoutType: choose best match; if unclear, use Other.",
        "- durationMin: infer minutes if described; otherwise omit.",
        "- intensity: Low/Medium/High if inferable; otherwise omit.",
        "- detail: short clarified summary (optional).",
        "",
        "Input text:",
        text,
    ])


def extract_json(text: str) -> str:
    """Pull the JSON out of a fenced block or the outermost {...} span."""
    t = (text or "").strip()
    fence = FENCE_RE.search(t)
    if fence and fence.group(1):
        return fence.group(1).strip()

    first, last = t.find("{"), t.rfind("}")
    if first >= 0 and last > first:
        return t[first:last + 1].strip()
    return t


def generate_json(prompt: str, client=None) -> dict:
    client = client or get_client()
    response = client.chat.completions.create(
        model=settings.OPENAI_MODEL,
        messages=[
            {"role": "system", "content": "You return structured JSON only."},
            {"role": "user", "content": prompt},
        ],
        max_tokens=512,
        temperature=0.2,
    )

    raw = extract_json(response.choices[0].message.content or "")
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning("AI returned invalid JSON: %s", raw[:300])
        raise AssistError(f"AI returned non-JSON: {raw[:300]}")
    if not isinstance(data, dict):
        raise AssistError(f"AI returned non-object JSON: {raw[:300]}")
    return data


class MealAssistForm(forms.Form):
    mealType = forms.ChoiceField(choices=[(c, c) for c in MEAL_TYPES], required=False)
    notes = forms.CharField(max_length=500, required=False)
    items = forms.Field(required=False)

    def clean_items(self):
        items = self.cleaned_data.get("items")
        if items in (None, ""):
            items = []
        if not isinstance(items, list) or len(items) > 50:
            raise ValidationError("items must be a list of at most 50 strings")
        if any(not isinstance(i, str) or not i.strip() for i in items):
            raise ValidationError("items must be non-empty strings")
        return [i.strip() for i in items]


class WorkoutAssistForm(forms.Form):
    workoutType = forms.ChoiceField(choices=[(c, c) for c in WORKOUT_TYPES], required=False)
    durationMin = forms.IntegerField(min_value=1, max_value=600, required=False)
    intensity = forms.ChoiceField(choices=[(c, c) for c in INTENSITIES], required=False)
    detail = forms.CharField(max_length=2000, required=False)


def _compact(cleaned: dict, keep=("items",)) -> dict:
    return {k: v for k, v in cleaned.items() if k in keep or v not in ("", None)}


def _assist(form_class, build_prompt, args, client=None):
    text = ((args or {}).get("text") or "").strip()
    if not text:
        return fail("Text is empty.")
    if not is_ai_configured():
        return fail("AI assist is not configured (missing OPENAI_API_KEY).")

    try:
        data = generate_json(build_prompt(text), client=client)
        try:
            cleaned = validate(form_class, data)
        except ValidationError as e:
            raise AssistError(f"AI output rejected: {to_error_message(e)}")
        return ok(_compact(cleaned))
    except (AssistError, OpenAIError) as e:
        logger.warning("AI assist failed: %s", e)
        return fail(to_error_message(e))


def assist_meal(args, client=None):
    return _assist(MealAssistForm, build_meal_prompt, args, client)


def assist_workout(args, client=None):
    return _assist(WorkoutAssistForm, build_workout_prompt, args, client)


def merge_assist(kind: str, values: dict, suggestion: dict) -> dict:
    """Fill blank form ``values`` from an assist ``suggestion``."""
    merged = dict(values)

    def fill(name, value):
        if value in (None, "", []):
            return
        if merged.get(name) in (None, ""):
            merged[name] = value

    if kind == "meal":
        fill("meal_type", suggestion.get("mealType"))
        items = suggestion.get("items") or []
        if items:
            fill("items_json", json.dumps(items, ensure_ascii=False))
        fill("note", suggestion.get("notes"))
    elif kind == "workout":
        fill("workout_type", suggestion.get("workoutType"))
        fill("duration_min", suggestion.get("durationMin"))
        fill("intensity", suggestion.get("intensity"))
        fill("detail", suggestion.get("detail"))
    else:
        raise ValueError(f"Unknown assist kind: {kind}")

    merged["ai_assisted"] = True
    return merged
