"""
Raw table access for the admin data browser.

Both sources expose the same four calls (tables, schema, fetch_rows,
fetch_row) over plain dict rows so the views never care which backend is
active. Relational browsing is limited to the tables the logbook models own
and that actually exist in the connected database.
"""
from dataclasses import dataclass
from datetime import date, datetime

from django.conf import settings
from django.db import connection, models

from logbook.backends import get_store
from logbook.backends.airtable import AirtableClient, AirtableError, escape_formula_value
from logbook.conf import get_app_tz
from logbook.daykey import end_of_day_utc, start_of_day_utc, to_day_key, to_iso
from logbook.models import Day, JournalEntry, MealEntry, SleepEntry, WeightEntry, WorkoutEntry

BROWSABLE_MODELS = (Day, WeightEntry, SleepEntry, MealEntry, WorkoutEntry, JournalEntry)

DATE_COLUMN_PRIORITY = (
    "day_date",
    "eaten_at",
    "performed_at",
    "sleep_start_at",
    "recorded_at",
    "created_at",
    "updated_at",
)
AIRTABLE_DATE_PRIORITY = (
    "dayDate",
    "eatenAt",
    "performedAt",
    "sleepStartAt",
    "recordedAt",
    "createdTime",
    "updatedAt",
)


class UnknownTable(LookupError):
    def __init__(self, table):
        self.table = table
        super().__init__(f"Unknown table: {table}")


@dataclass
class Page:
    rows: list
    total: int
    columns: list
    date_column: str | None


def resolve_date_column(columns, priority=DATE_COLUMN_PRIORITY):
    names = {c["name"] for c in columns}
    return next((name for name in priority if name in names), None)


def _display(value):
    if isinstance(value, datetime):
        return to_iso(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


class RelationalSource:
    name = "relational"

    def _models(self):
        existing = set(connection.introspection.table_names())
        return {m._meta.db_table: m for m in BROWSABLE_MODELS if m._meta.db_table in existing}

    def _model(self, table):
        model = self._models().get(table)
        if model is None:
            raise UnknownTable(table)
        return model

    def tables(self):
        return sorted(self._models())

    def schema(self, table):
        return [
            {"name": f.column, "type": f.get_internal_type(), "nullable": f.null}
            for f in self._model(table)._meta.concrete_fields
        ]

    def _filtered(self, model, filters):
        columns = {f.column: f for f in model._meta.concrete_fields}
        qs = model.objects.all()

        for key in ("owner_key", "day_key"):
            if filters.get(key) and key in columns:
                qs = qs.filter(**{key: filters[key]})

        date_column = resolve_date_column(self.schema(model._meta.db_table))
        if date_column:
            is_datetime = isinstance(columns[date_column], models.DateTimeField)
            tz = get_app_tz()
            if filters.get("from"):
                bound = start_of_day_utc(filters["from"], tz) if is_datetime else filters["from"]
                qs = qs.filter(**{f"{date_column}__gte": bound})
            if filters.get("to"):
                bound = end_of_day_utc(filters["to"], tz) if is_datetime else filters["to"]
                qs = qs.filter(**{f"{date_column}__lte": bound})
        return qs, date_column

    def fetch_rows(self, table, limit, offset, filters) -> Page:
        model = self._model(table)
        qs, date_column = self._filtered(model, filters)
        order = f"-{date_column or model._meta.pk.column}"
        names = [f.attname for f in model._meta.concrete_fields]
        rows = [
            {k: _display(v) for k, v in row.items()}
            for row in qs.order_by(order).values(*names)[offset:offset + limit]
        ]
        return Page(rows=rows, total=qs.count(), columns=self.schema(table), date_column=date_column)

    def fetch_row(self, table, row_id):
        model = self._model(table)
        names = [f.attname for f in model._meta.concrete_fields]
        row = model.objects.filter(pk=row_id).values(*names).first()
        if row is None:
            return None, self.schema(table)
        return {k: _display(v) for k, v in row.items()}, self.schema(table)


class AirtableSource:
    name = "airtable"

    def __init__(self, client: AirtableClient = None):
        self.client = client or AirtableClient()

    def tables(self):
        return list(settings.AIRTABLE_TABLES.values())

    def _check(self, table):
        if table not in self.tables():
            raise UnknownTable(table)

    @staticmethod
    def flatten(raw):
        return {"id": raw.get("id"), "createdTime": raw.get("createdTime"), **raw.get("fields", {})}

    @staticmethod
    def columns_of(rows):
        seen = {"id": None, "createdTime": None}
        for row in rows:
            for name, value in row.items():
                if seen.get(name) is None:
                    seen[name] = value
        return [
            {"name": name, "type": type(value).__name__ if value is not None else "unknown", "nullable": True}
            for name, value in seen.items()
        ]

    def schema(self, table):
        self._check(table)
        page = self.client.list_page(table, page_size=10)
        return self.columns_of([self.flatten(r) for r in page.get("records", [])])

    def _formula(self, filters):
        clauses = []
        if filters.get("owner_key"):
            clauses.append("{ownerKey}='" + escape_formula_value(filters["owner_key"]) + "'")
        if filters.get("day_key"):
            clauses.append("{dayKey}='" + escape_formula_value(filters["day_key"]) + "'")
        if not clauses:
            return None
        return clauses[0] if len(clauses) == 1 else "AND(" + ", ".join(clauses) + ")"

    def fetch_rows(self, table, limit, offset, filters) -> Page:
        self._check(table)
        rows = [self.flatten(r) for r in self.client.list_all(table, filter_by_formula=self._formula(filters))]
        columns = self.columns_of(rows)
        date_column = resolve_date_column(columns, AIRTABLE_DATE_PRIORITY)

        if date_column and (filters.get("from") or filters.get("to")):
            tz = get_app_tz()

            def in_range(row):
                value = row.get(date_column)
                if not value:
                    return False
                day = to_day_key(value, tz)
                if filters.get("from") and day < filters["from"]:
                    return False
                if filters.get("to") and day > filters["to"]:
                    return False
                return True

            rows = [row for row in rows if in_range(row)]

        if date_column:
            rows.sort(key=lambda row: str(row.get(date_column) or ""), reverse=True)

        return Page(rows=rows[offset:offset + limit], total=len(rows), columns=columns, date_column=date_column)

    def fetch_row(self, table, row_id):
        self._check(table)
        try:
            row = self.flatten(self.client.get_one(table, row_id))
        except AirtableError as e:
            if e.status == 404:
                return None, []
            raise
        return row, self.columns_of([row])


def get_source():
    store = get_store()
    if store is None:
        return None
    if store.name == "relational":
        return RelationalSource()
    return AirtableSource()
