"""
Repository contracts shared by every storage backend.

Repositories speak snake_case on the way in (keyword arguments and patch
dicts) and hand back ``Record`` objects whose ``fields`` use the camelCase
names of the external row shape, e.g. ``ownerKey``, ``dayKey``, ``dayRef``.
Missing optional values are left out of ``fields`` rather than set to None.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field


class RecordNotFound(LookupError):
    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} not found: {record_id}")


@dataclass
class Record:
    id: str
    created_at: str
    fields: dict = field(default_factory=dict)

    def get(self, name, default=None):
        return self.fields.get(name, default)

    def as_dict(self) -> dict:
        return {"id": self.id, "createdAt": self.created_at, "fields": dict(self.fields)}


def camel(name: str) -> str:
    """``day_key`` -> ``dayKey``; ``day_id`` is the ``dayRef`` link."""
    if name == "day_id":
        return "dayRef"
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


class DayRepository(ABC):
    @abstractmethod
    def find(self, owner_key: str, day_key: str) -> Record | None: ...

    @abstractmethod
    def upsert(self, owner_key: str, day_key: str, day_date: str | None = None) -> str:
        """Create the (owner, day) row if needed and return its id."""

    @abstractmethod
    def list_by_range(self, owner_key: str, start_inclusive: str, end_exclusive: str) -> list[Record]:
        """Days in [start, end) ordered by date, each carrying live child counts."""


class SingleDayRepository(ABC):
    """Kinds with at most one row per (owner, day): weight and sleep."""

    kind = ""

    @abstractmethod
    def find(self, owner_key: str, day_key: str) -> Record | None: ...

    @abstractmethod
    def create(self, **fields) -> Record: ...

    @abstractmethod
    def update(self, record_id: str, patch: dict) -> Record: ...

    @abstractmethod
    def delete_by_day(self, owner_key: str, day_key: str) -> None:
        """Remove the row for the day; a missing row is not an error."""

    @abstractmethod
    def list_by_range(self, owner_key: str, start_inclusive: str, end_exclusive: str) -> list[Record]: ...


class MultiDayRepository(ABC):
    """Kinds with any number of rows per day: meals and workouts."""

    kind = ""

    @abstractmethod
    def list_by_day(self, owner_key: str, day_key: str) -> list[Record]: ...

    @abstractmethod
    def get(self, record_id: str) -> Record:
        """Return the entry, or raise RecordNotFound."""

    @abstractmethod
    def create(self, **fields) -> Record: ...

    @abstractmethod
    def update(self, record_id: str, patch: dict) -> Record: ...

    @abstractmethod
    def delete(self, record_id: str) -> None: ...


class WeightRepository(SingleDayRepository):
    kind = "Weight"


class SleepRepository(SingleDayRepository):
    kind = "Sleep"


class MealRepository(MultiDayRepository):
    kind = "Meal"


class WorkoutRepository(MultiDayRepository):
    kind = "Workout"

    @abstractmethod
    def list_by_owner(self, owner_key: str, limit: int = 50) -> list[Record]:
        """Most recent workouts first."""


class JournalRepository(ABC):
    kind = "Journal entry"

    @abstractmethod
    def list(self, owner_key: str, limit: int = 50, offset: int = 0) -> list[Record]: ...

    @abstractmethod
    def get(self, owner_key: str, entry_id: str) -> Record | None: ...

    @abstractmethod
    def create(self, owner_key: str, title: str, details: str, attach: list) -> Record: ...

    @abstractmethod
    def update(self, owner_key: str, entry_id: str, title: str, details: str, attach: list) -> Record: ...

    @abstractmethod
    def delete(self, owner_key: str, entry_id: str) -> None: ...


@dataclass
class Store:
    name: str
    days: DayRepository
    weights: WeightRepository
    sleeps: SleepRepository
    meals: MealRepository
    workouts: WorkoutRepository
    journal: JournalRepository
