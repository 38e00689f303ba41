"""Pure filtering of the plan catalog."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, FrozenSet, Iterable, List, Mapping

from consorcio.data_model import Category, Plan

ALL_CATEGORIES = {"", "all", "todos"}


@dataclass(frozen=True)
class FilterCriteria:
    """Independent optional constraints; a plan must satisfy all active ones."""

    category: Category | None = None
    credit_min: float | None = None
    credit_max: float | None = None
    term_min: float | None = None
    term_max: float | None = None
    bid_min: float | None = None
    bid_max: float | None = None
    fee_max: float | None = None
    administrators: FrozenSet[str] = field(default_factory=frozenset)
    search: str = ""

    def is_empty(self) -> bool:
        return self == FilterCriteria()

    @classmethod
    def from_mapping(cls, args: Mapping[str, Any]) -> "FilterCriteria":
        """Parse query-string style input. Blank values mean "no bound"."""
        return cls(
            category=_parse_category(args.get("category")),
            credit_min=_parse_bound(args, "creditMin"),
            credit_max=_parse_bound(args, "creditMax"),
            term_min=_parse_bound(args, "termMin"),
            term_max=_parse_bound(args, "termMax"),
            bid_min=_parse_bound(args, "bidMin"),
            bid_max=_parse_bound(args, "bidMax"),
            fee_max=_parse_bound(args, "feeMax"),
            administrators=frozenset(_parse_names(args)),
            search=str(args.get("search") or ""),
        )


def _parse_category(value: Any) -> Category | None:
    if value is None or str(value).strip().lower() in ALL_CATEGORIES:
        return None
    category = Category.parse(value)
    if category is None:
        raise ValueError(f"Unknown category: {value}")
    return category


def _parse_bound(args: Mapping[str, Any], key: str) -> float | None:
    value = args.get(key)
    if value is None or str(value).strip() == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid number for {key}: {value}") from exc
    if not math.isfinite(number):
        raise ValueError(f"Invalid number for {key}: {value}")
    return number


def _parse_names(args: Mapping[str, Any]) -> List[str]:
    if hasattr(args, "getlist"):
        raw_values = args.getlist("administrator")
    else:
        raw = args.get("administrator") or []
        raw_values = [raw] if isinstance(raw, str) else list(raw)
    names: List[str] = []
    for raw in raw_values:
        names.extend(part.strip() for part in str(raw).split(",") if part.strip())
    return names


def _within(value: float, lower: float | None, upper: float | None) -> bool:
    if lower is not None and value < lower:
        return False
    if upper is not None and value > upper:
        return False
    return True


def matches(plan: Plan, criteria: FilterCriteria) -> bool:
    if criteria.category is not None and plan.category != criteria.category:
        return False
    if not _within(plan.credit_value, criteria.credit_min, criteria.credit_max):
        return False
    if not _within(plan.term_months, criteria.term_min, criteria.term_max):
        return False
    if not _within(plan.average_bid_percent, criteria.bid_min, criteria.bid_max):
        return False
    if not _within(plan.admin_fee_percent, None, criteria.fee_max):
        return False
    if criteria.administrators and plan.administrator not in criteria.administrators:
        return False
    if criteria.search and criteria.search.lower() not in plan.search_text():
        return False
    return True


def apply_filters(plans: Iterable[Plan], criteria: FilterCriteria) -> List[Plan]:
    """Matching plans, in catalog order."""
    return [plan for plan in plans if matches(plan, criteria)]
