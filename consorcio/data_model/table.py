from __future__ import annotations

from .base import ColumnDefinition, TableModel
from .defaults import default_plan_rows
from .plan import CATEGORIES, PlanDraft

_FORM = PlanDraft()


class PlanTableModel(TableModel):
    """Schema + seed rows for the plan registration form and catalog table."""

    def __init__(self) -> None:
        columns = [
            ColumnDefinition("administrator", "Administrator", required=True, help="Ex: Rodobens, Porto Seguro"),
            ColumnDefinition(
                "category",
                "Category",
                kind="select",
                default=_FORM.category.value,
                options=CATEGORIES,
                required=True,
            ),
            ColumnDefinition(
                "creditValue",
                "Credit value",
                kind="number",
                default=_FORM.credit_value,
                min_value=0.0,
                step=1000.0,
                required=True,
            ),
            ColumnDefinition(
                "installmentValue",
                "Installment",
                kind="number",
                default=_FORM.installment_value,
                min_value=0.0,
                step=10.0,
                help="optional, 0 = unknown",
            ),
            ColumnDefinition(
                "termMonths",
                "Term (months)",
                kind="number",
                default=_FORM.term_months,
                min_value=1,
                step=1,
                required=True,
            ),
            ColumnDefinition("adminFeePercent", "Admin fee % (approx.)", kind="number", default=_FORM.admin_fee_percent, min_value=0.0, step=0.5),
            ColumnDefinition("averageBidPercent", "Average bid %", kind="number", default=_FORM.average_bid_percent, min_value=0.0, step=0.5),
            ColumnDefinition("group", "Group", help="Ex: A123"),
            ColumnDefinition("notes", "Notes", kind="textarea"),
        ]
        super().__init__("plans", columns, default_plan_rows())
