from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Tuple

import pandas as pd

from consorcio.data_model import Plan


@dataclass(frozen=True)
class BidValue:
    percent: float
    amount: float


@dataclass(frozen=True)
class ComparisonRow:
    key: str
    label: str
    values: Tuple[Any, ...]


def _average_bid(plan: Plan) -> BidValue:
    return BidValue(plan.average_bid_percent, plan.average_bid_amount())


# Fixed row order of the comparison table; None marks an unknown value.
COMPARISON_FIELDS: List[Tuple[str, str, Callable[[Plan], Any]]] = [
    ("creditValue", "Credit value", lambda p: p.credit_value),
    ("installmentValue", "Installment", lambda p: p.installment_value or None),
    ("termMonths", "Term (months)", lambda p: p.term_months),
    ("adminFeePercent", "Admin fee % (approx.)", lambda p: p.admin_fee_percent),
    ("averageBid", "Average bid", _average_bid),
    ("group", "Group", lambda p: p.group),
    ("notes", "Notes", lambda p: p.notes),
    ("estimatedTotalPaid", "Estimated total in installments", lambda p: p.estimated_total_paid()),
]


@dataclass(frozen=True)
class ComparisonTable:
    plans: Tuple[Plan, ...]
    rows: Tuple[ComparisonRow, ...]

    def headers(self) -> List[str]:
        return [f"{plan.administrator} • {plan.category.value}" for plan in self.plans]

    def row(self, key: str) -> ComparisonRow:
        for row in self.rows:
            if row.key == key:
                return row
        raise KeyError(key)

    def to_frame(self) -> pd.DataFrame:
        """Rows become the index, one column per compared plan id."""
        data = {
            plan.id: [row.values[col] for row in self.rows]
            for col, plan in enumerate(self.plans)
        }
        frame = pd.DataFrame(data, index=[row.label for row in self.rows], columns=[plan.id for plan in self.plans])
        frame.index.name = "Field"
        return frame

    def to_payload(self) -> Dict[str, Any]:
        return {
            "columns": [
                {"id": plan.id, "header": header}
                for plan, header in zip(self.plans, self.headers())
            ],
            "rows": [
                {"key": row.key, "label": row.label, "values": [_json_value(v) for v in row.values]}
                for row in self.rows
            ],
        }


def _json_value(value: Any) -> Any:
    if isinstance(value, BidValue):
        return {"percent": value.percent, "amount": value.amount}
    return value


def project(plans: Iterable[Plan]) -> ComparisonTable:
    columns = tuple(plans)
    rows = tuple(
        ComparisonRow(key, label, tuple(extract(plan) for plan in columns))
        for key, label, extract in COMPARISON_FIELDS
    )
    return ComparisonTable(columns, rows)


def compare_selection(store, selection=None) -> ComparisonTable:
    """Comparison of the selected plans, in selection order.

    Ids that are no longer in the catalog are skipped.
    """
    selection = selection if selection is not None else store.selection
    plans = [store.get(plan_id) for plan_id in selection.ids()]
    return project(plan for plan in plans if plan is not None)


def estimate_bid(credit_value: float, percent: float | None = None, fixed_amount: float | None = None) -> float:
    """Bid offer estimate: a fixed amount wins over a percentage of the credit."""
    if fixed_amount is not None:
        return fixed_amount
    if percent is None or not credit_value:
        return 0.0
    return (percent / 100.0) * credit_value
