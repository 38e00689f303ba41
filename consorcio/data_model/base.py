from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class ColumnDefinition:
    """Lightweight schema descriptor used by form and table front ends."""

    field: str
    label: str
    kind: str = "text"  # text | number | select | textarea
    default: Any = ""
    options: List[str] | None = None
    min_value: float | None = None
    step: float | None = None
    required: bool = False
    help: str | None = None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "label": self.label,
            "kind": self.kind,
            "default": self.default,
            "options": self.options or [],
            "min": self.min_value,
            "step": self.step,
            "required": self.required,
            "help": self.help,
        }


@dataclass
class TableModel:
    """Container for a table schema plus default rows."""

    name: str
    columns: List[ColumnDefinition]
    default_rows: List[dict[str, Any]] = field(default_factory=list)

    def default_record(self) -> dict[str, Any]:
        return {col.field: col.default for col in self.columns}

    def required_fields(self) -> List[str]:
        return [col.field for col in self.columns if col.required]
