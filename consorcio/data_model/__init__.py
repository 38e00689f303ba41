from .base import ColumnDefinition, TableModel
from .defaults import default_plan_rows
from .plan import (
    CATEGORIES,
    CATEGORY_LABELS,
    Category,
    Plan,
    PlanDraft,
    coerce_amount,
    coerce_optional_text,
    coerce_term,
    extract_value,
    parse_timestamp,
    timestamp_now,
)
from .table import PlanTableModel

__all__ = [
    "CATEGORIES",
    "CATEGORY_LABELS",
    "Category",
    "ColumnDefinition",
    "Plan",
    "PlanDraft",
    "PlanTableModel",
    "TableModel",
    "coerce_amount",
    "coerce_optional_text",
    "coerce_term",
    "default_plan_rows",
    "extract_value",
    "parse_timestamp",
    "timestamp_now",
]
