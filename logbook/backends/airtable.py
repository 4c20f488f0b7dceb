"""
Airtable backend.

The REST API offers no uniqueness constraints and no server-side joins, so
the day upsert is find-then-create and the calendar counts are tallied here
from the child tables.
"""
import json
import logging
import random
from collections import Counter
from time import sleep
from urllib.parse import quote

import requests
from django.conf import settings
from django.utils import timezone
from requests.exceptions import RequestException

from journal.attachments import normalize_attachments

from ..daykey import add_days, assert_day_key, to_iso
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

MAX_RETRIES = 4
PAGE_SIZE = 100


class AirtableError(Exception):
    def __init__(self, status, url, body=""):
        self.status = status
        self.url = url
        self.body = body
        super().__init__(f"Airtable request failed: {status} url={url} body={body}")


def escape_formula_value(value: str) -> str:
    """Make ``value`` safe inside a single-quoted formula string."""
    return str(value).replace("\\", "\\\\").replace("'", "\\'")


def owner_formula(owner_key: str) -> str:
    return "{ownerKey}='" + escape_formula_value(owner_key) + "'"


def owner_day_formula(owner_key: str, day_key: str) -> str:
    return "AND(" + owner_formula(owner_key) + ", {dayKey}='" + escape_formula_value(day_key) + "')"


def date_range_formula(owner_key: str, field: str, start_inclusive: str, end_exclusive: str, parse=False) -> str:
    # IS_AFTER is strict, so start one day early
    target = f"DATETIME_PARSE({{{field}}})" if parse else f"{{{field}}}"
    start_ex = add_days(assert_day_key(start_inclusive), -1)
    end = assert_day_key(end_exclusive)
    return (
        "AND(" + owner_formula(owner_key) + ", "
        f"IS_AFTER({target}, '{start_ex}'), "
        f"IS_BEFORE({target}, '{end}'))"
    )


class AirtableClient:
    """Thin wrapper over the Airtable REST API with retry on 429 and 5xx."""

    def __init__(self, api_key=None, base_id=None, api_base=None, timeout=None, session=None):
        self.api_key = api_key or settings.AIRTABLE_API_KEY
        self.base_id = base_id or settings.AIRTABLE_BASE_ID
        self.api_base = (api_base or settings.AIRTABLE_API_BASE).rstrip("/")
        self.timeout = timeout or settings.AIRTABLE_TIMEOUT
        self.session = session or requests.Session()

    def _url(self, table: str, record_id: str = None) -> str:
        url = f"{self.api_base}/{quote(self.base_id, safe='')}/{quote(table, safe='')}"
        if record_id:
            url += f"/{quote(record_id, safe='')}"
        return url

    def _request(self, method: str, url: str, params=None, payload=None) -> dict:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        for attempt in range(MAX_RETRIES + 1):
            try:
                response = self.session.request(
                    method, url, params=params, json=payload, headers=headers, timeout=self.timeout
                )
            except RequestException as e:
                raise AirtableError(None, url, str(e)) from e

            if response.ok:
                return response.json()

            status = response.status_code
            retryable = status == 429 or 500 <= status <= 599
            if retryable and attempt < MAX_RETRIES:
                backoff_ms = 250 * 2 ** attempt + random.randint(0, 79)
                logger.warning(
                    "Airtable %s %s returned %s, retrying in %sms (attempt %s)",
                    method, url, status, backoff_ms, attempt + 1,
                )
                sleep(backoff_ms / 1000)
                continue

            raise AirtableError(status, response.url or url, response.text)

    def list_page(self, table, filter_by_formula=None, sort=None, fields=None,
                  page_size=None, max_records=None, offset=None, view=None) -> dict:
        params = []
        if view:
            params.append(("view", view))
        if max_records is not None:
            params.append(("maxRecords", str(max_records)))
        if page_size is not None:
            params.append(("pageSize", str(page_size)))
        if offset:
            params.append(("offset", offset))
        if filter_by_formula:
            params.append(("filterByFormula", filter_by_formula))
        for name in fields or ():
            params.append(("fields[]", name))
        for i, (field, direction) in enumerate(sort or ()):
            params.append((f"sort[{i}][field]", field))
            params.append((f"sort[{i}][direction]", direction))

        return self._request("GET", self._url(table), params=params)

    def list_all(self, table, **opts) -> list[dict]:
        """Every record matching ``opts``, following the offset cursor."""
        records = []
        offset = opts.pop("offset", None)
        while True:
            page = self.list_page(table, offset=offset, **opts)
            records.extend(page.get("records", []))
            offset = page.get("offset")
            if not offset:
                return records

    def get_one(self, table, record_id) -> dict:
        return self._request("GET", self._url(table, record_id))

    def create_one(self, table, fields, typecast=True) -> dict:
        payload = {"records": [{"fields": fields}], "typecast": typecast}
        return self._request("POST", self._url(table), payload=payload)["records"][0]

    def update_one(self, table, record_id, fields, typecast=True) -> dict:
        payload = {"records": [{"id": record_id, "fields": fields}], "typecast": typecast}
        return self._request("PATCH", self._url(table), payload=payload)["records"][0]

    def delete_one(self, table, record_id) -> None:
        data = self._request("DELETE", self._url(table), params=[("records[]", record_id)])
        deleted = any(r.get("id") == record_id and r.get("deleted") is True for r in data.get("records", []))
        if not deleted:
            raise AirtableError(200, self._url(table), f"delete not confirmed for id={record_id}")


def to_record(raw: dict) -> Record:
    return Record(id=raw["id"], created_at=raw.get("createdTime", ""), fields=dict(raw.get("fields") or {}))


def to_fields(values: dict, drop_empty=True) -> dict:
    """snake_case values -> Airtable field names, datetimes as ISO strings."""
    fields = {}
    for name, value in values.items():
        if value is None and drop_empty:
            continue
        if name == "day_id":
            value = [value] if value else []
        elif hasattr(value, "tzinfo"):
            value = to_iso(value)
        elif hasattr(value, "isoformat"):
            value = value.isoformat()
        fields[camel(name)] = value
    return fields


class AirtableRepository:
    table_key = ""
    sort_field = ""

    def __init__(self, client: AirtableClient, table: str = None):
        self.client = client
        self.table = table or settings.AIRTABLE_TABLES[self.table_key]

    def _not_found(self, e, record_id):
        if e.status == 404:
            raise RecordNotFound(self.kind, record_id) from e
        raise e

    def create(self, **fields):
        return to_record(self.client.create_one(self.table, to_fields(fields)))

    def update(self, record_id, patch):
        try:
            raw = self.client.update_one(self.table, record_id, to_fields(patch, drop_empty=False))
        except AirtableError as e:
            self._not_found(e, record_id)
        return to_record(raw)

    def _for_day(self, owner_key, day_key, **opts):
        return self.client.list_all(self.table, filter_by_formula=owner_day_formula(owner_key, day_key), **opts)


class AirtableDayRepository(DayRepository):
    child_tables = {
        "weightCount": "weight",
        "sleepCount": "sleep",
        "mealCount": "meal",
        "workoutCount": "workout",
    }

    def __init__(self, client: AirtableClient, table: str = None):
        self.client = client
        self.table = table or settings.AIRTABLE_TABLES["days"]

    def find(self, owner_key, day_key):
        records = self.client.list_all(
            self.table, filter_by_formula=owner_day_formula(owner_key, day_key), max_records=1
        )
        return to_record(records[0]) if records else None

    def upsert(self, owner_key, day_key, day_date=None):
        assert_day_key(day_key)
        existing = self.find(owner_key, day_key)
        if existing:
            return existing.id
        created = self.client.create_one(
            self.table,
            {"ownerKey": owner_key, "dayKey": day_key, "dayDate": day_date or day_key},
        )
        logger.info("Created day %s for %s in Airtable", day_key, owner_key)
        return created["id"]

    def _counts(self, owner_key, start_inclusive, end_exclusive):
        formula = date_range_formula(owner_key, "dayKey", start_inclusive, end_exclusive, parse=True)
        counts = {}
        for count_field, table_key in self.child_tables.items():
            rows = self.client.list_all(
                settings.AIRTABLE_TABLES[table_key],
                filter_by_formula=formula,
                fields=["dayKey"],
                page_size=PAGE_SIZE,
            )
            counts[count_field] = Counter((r.get("fields") or {}).get("dayKey") for r in rows)
        return counts

    def list_by_range(self, owner_key, start_inclusive, end_exclusive):
        rows = self.client.list_all(
            self.table,
            filter_by_formula=date_range_formula(owner_key, "dayDate", start_inclusive, end_exclusive),
            sort=[("dayDate", "asc")],
            page_size=PAGE_SIZE,
        )
        counts = self._counts(owner_key, start_inclusive, end_exclusive)

        records = []
        for raw in rows:
            record = to_record(raw)
            day_key = record.fields.get("dayKey")
            for count_field, counter in counts.items():
                record.fields[count_field] = counter.get(day_key, 0)
            records.append(record)
        return records


class SingleDayAirtable(AirtableRepository):
    def find(self, owner_key, day_key):
        records = self._for_day(owner_key, day_key, max_records=1)
        return to_record(records[0]) if records else None

    def delete_by_day(self, owner_key, day_key):
        for raw in self._for_day(owner_key, day_key):
            self.client.delete_one(self.table, raw["id"])

    def list_by_range(self, owner_key, start_inclusive, end_exclusive):
        rows = self.client.list_all(
            self.table,
            filter_by_formula=date_range_formula(owner_key, "dayKey", start_inclusive, end_exclusive, parse=True),
            sort=[("dayKey", "asc")],
            page_size=PAGE_SIZE,
        )
        return [to_record(r) for r in rows]


class MultiDayAirtable(AirtableRepository):
    def list_by_day(self, owner_key, day_key):
        rows = self._for_day(owner_key, day_key, sort=[(self.sort_field, "asc")], page_size=PAGE_SIZE)
        return [to_record(r) for r in rows]

    def get(self, record_id):
        try:
            return to_record(self.client.get_one(self.table, record_id))
        except AirtableError as e:
            self._not_found(e, record_id)

    def delete(self, record_id):
        try:
            self.client.delete_one(self.table, record_id)
        except AirtableError as e:
            self._not_found(e, record_id)


class AirtableWeightRepository(SingleDayAirtable, WeightRepository):
    table_key = "weight"


class AirtableSleepRepository(SingleDayAirtable, SleepRepository):
    table_key = "sleep"


class AirtableMealRepository(MultiDayAirtable, MealRepository):
    table_key = "meal"
    sort_field = "eatenAt"


class AirtableWorkoutRepository(MultiDayAirtable, WorkoutRepository):
    table_key = "workout"
    sort_field = "performedAt"

    def list_by_owner(self, owner_key, limit=50):
        rows = self.client.list_all(
            self.table,
            filter_by_formula=owner_formula(owner_key),
            sort=[("performedAt", "desc")],
            max_records=limit,
            page_size=min(limit, PAGE_SIZE),
        )
        return [to_record(r) for r in rows]


def journal_to_record(raw: dict) -> Record:
    record = to_record(raw)
    attach = record.fields.get("attach")
    if isinstance(attach, str):
        try:
            attach = json.loads(attach) if attach.strip() else []
        except ValueError:
            logger.warning("Unreadable attach JSON on journal entry %s", record.id)
            attach = []
    record.fields["attach"] = normalize_attachments(attach)
    return record


class AirtableJournalRepository(AirtableRepository, JournalRepository):
    table_key = "journal"

    def _fields(self, owner_key, title, details, attach):
        return {
            "ownerKey": owner_key,
            "title": title,
            "details": details,
            "attach": json.dumps(attach, ensure_ascii=False),
            "updatedAt": to_iso(timezone.now()),
        }

    def list(self, owner_key, limit=50, offset=0):
        # the API pages by opaque cursor, so fetch through the window and slice
        rows = self.client.list_all(
            self.table,
            filter_by_formula=owner_formula(owner_key),
            sort=[("updatedAt", "desc")],
            max_records=offset + limit,
            page_size=PAGE_SIZE,
        )
        return [journal_to_record(r) for r in rows[offset:offset + limit]]

    def get(self, owner_key, entry_id):
        try:
            raw = self.client.get_one(self.table, entry_id)
        except AirtableError as e:
            if e.status == 404:
                return None
            raise
        record = journal_to_record(raw)
        return record if record.fields.get("ownerKey") == owner_key else None

    def create(self, owner_key, title, details, attach):
        raw = self.client.create_one(self.table, self._fields(owner_key, title, details, attach))
        return journal_to_record(raw)

    def update(self, owner_key, entry_id, title, details, attach):
        if self.get(owner_key, entry_id) is None:
            raise RecordNotFound(self.kind, entry_id)
        raw = self.client.update_one(self.table, entry_id, self._fields(owner_key, title, details, attach))
        return journal_to_record(raw)

    def delete(self, owner_key, entry_id):
        if self.get(owner_key, entry_id) is None:
            raise RecordNotFound(self.kind, entry_id)
        self.client.delete_one(self.table, entry_id)


def build_airtable_store(client: AirtableClient = None) -> Store:
    client = client or AirtableClient()
    return Store(
        name="airtable",
        days=AirtableDayRepository(client),
        weights=AirtableWeightRepository(client),
        sleeps=AirtableSleepRepository(client),
        meals=AirtableMealRepository(client),
        workouts=AirtableWorkoutRepository(client),
        journal=AirtableJournalRepository(client),
    )
