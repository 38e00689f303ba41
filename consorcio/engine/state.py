import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Tuple

import pandas as pd

from consorcio.data_model import Plan, PlanDraft, default_plan_rows, parse_timestamp, timestamp_now
from consorcio.exchange.codec import FormatError, decode_plans, encode_plans, generate_id

from .storage import STORAGE_KEY

logger = logging.getLogger(__name__)

SELECTION_CAPACITY = 4


@dataclass(frozen=True)
class Created:
    plan: Plan


@dataclass(frozen=True)
class Updated:
    plan: Plan


@dataclass(frozen=True)
class ValidationRejected:
    missing_fields: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class NotFound:
    plan_id: str


class SelectionSet:
    """Ordered set of plan ids picked for side-by-side comparison."""

    def __init__(self, capacity: int = SELECTION_CAPACITY):
        self.capacity = capacity
        self._ids: List[str] = []

    def __contains__(self, plan_id: str) -> bool:
        return plan_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def ids(self) -> Tuple[str, ...]:
        return tuple(self._ids)

    def is_full(self) -> bool:
        return len(self._ids) >= self.capacity

    def toggle(self, plan_id: str) -> bool:
        """Flip membership of ``plan_id``; adding to a full set is ignored.

        Returns whether the id is selected after the call.
        """
        if plan_id in self._ids:
            self._ids.remove(plan_id)
            return False
        if self.is_full():
            return False
        self._ids.append(plan_id)
        return True

    def remove(self, plan_id: str) -> None:
        if plan_id in self._ids:
            self._ids.remove(plan_id)

    def retain(self, plan_ids: Iterable[str]) -> None:
        keep = set(plan_ids)
        self._ids = [plan_id for plan_id in self._ids if plan_id in keep]

    def clear(self) -> None:
        self._ids = []


class PlanStore:
    """Ordered plan catalog persisted as one JSON entry in key-value storage."""

    def __init__(
        self,
        storage,
        key: str = STORAGE_KEY,
        seed: bool = True,
        selection: SelectionSet | None = None,
        clock: Callable | None = None,
    ):
        self.storage = storage
        self.key = key
        self.seed = seed
        self.selection = selection if selection is not None else SelectionSet()
        self.clock = clock
        self.plans: List[Plan] = []
        # Guards the catalog and its persisted copy across request threads.
        self._lock = threading.RLock()
        self.load()

    def load(self) -> None:
        raw = self.storage.get(self.key)
        if raw is None:
            if self.seed:
                self.plans = self._seed_plans()
                logger.info("No saved catalog under %s, seeded %d example plans", self.key, len(self.plans))
                self._save()
            return
        try:
            self.plans = decode_plans(raw)
        except FormatError:
            logger.warning("Saved catalog under %s is unreadable, starting empty", self.key, exc_info=True)
            self.plans = []

    def _seed_plans(self) -> List[Plan]:
        plans: List[Plan] = []
        stamp = self._now()
        for row in default_plan_rows():
            plan_id = generate_id(p.id for p in plans)
            plans.append(Plan.from_draft(plan_id, PlanDraft.from_mapping(row), stamp))
        return plans

    def _now(self) -> str:
        return timestamp_now(self.clock)

    def _stamp_after(self, previous: str) -> str:
        stamp = self._now()
        before = parse_timestamp(previous)
        after = parse_timestamp(stamp)
        if before is not None and after is not None and after < before:
            return previous
        return stamp

    def _index_of(self, plan_id: str) -> int:
        for index, plan in enumerate(self.plans):
            if plan.id == plan_id:
                return index
        return -1

    def list(self) -> Tuple[Plan, ...]:
        with self._lock:
            return tuple(self.plans)

    def get(self, plan_id: str) -> Plan | None:
        index = self._index_of(plan_id)
        return self.plans[index] if index >= 0 else None

    def administrators(self) -> List[str]:
        return sorted({plan.administrator for plan in self.plans})

    def create(self, draft: PlanDraft) -> Created | ValidationRejected:
        missing = draft.missing_fields()
        if missing:
            logger.debug("Create rejected, missing %s", missing)
            return ValidationRejected(missing)
        with self._lock:
            plan = Plan.from_draft(generate_id(p.id for p in self.plans), draft, self._now())
            self.plans.insert(0, plan)
            self._save()
        logger.debug("Created plan %s (%s)", plan.id, plan.administrator)
        return Created(plan)

    def update(self, plan_id: str, draft: PlanDraft) -> Updated | ValidationRejected | NotFound:
        with self._lock:
            index = self._index_of(plan_id)
            if index < 0:
                return NotFound(plan_id)
            missing = draft.missing_fields()
            if missing:
                logger.debug("Update of %s rejected, missing %s", plan_id, missing)
                return ValidationRejected(missing)
            previous = self.plans[index]
            plan = Plan.from_draft(plan_id, draft, self._stamp_after(previous.updated_at))
            self.plans[index] = plan
            self._save()
        logger.debug("Updated plan %s", plan_id)
        return Updated(plan)

    def delete(self, plan_id: str, confirm: Callable[[Plan], bool] | None = None) -> bool:
        """Remove a plan and drop it from the comparison selection.

        ``confirm`` receives the plan about to be removed; a falsy answer
        abandons the delete. Unknown ids are a no-op.
        """
        with self._lock:
            index = self._index_of(plan_id)
            if index < 0:
                self.selection.remove(plan_id)
                return False
            if confirm is not None and not confirm(self.plans[index]):
                return False
            del self.plans[index]
            self.selection.remove(plan_id)
            self._save()
        logger.debug("Deleted plan %s", plan_id)
        return True

    def replace_all(self, plans: Iterable[Plan]) -> None:
        with self._lock:
            self.plans = list(plans)
            self.selection.retain(plan.id for plan in self.plans)
            self._save()

    def to_frame(self) -> pd.DataFrame:
        columns = [
            "id",
            "administrator",
            "category",
            "creditValue",
            "installmentValue",
            "termMonths",
            "adminFeePercent",
            "averageBidPercent",
            "group",
            "notes",
            "updatedAt",
        ]
        records: List[Dict] = [plan.to_record() for plan in self.plans]
        return pd.DataFrame(records, columns=columns)

    def _save(self) -> None:
        with self._lock:
            self.storage.set(self.key, encode_plans(self.plans))
