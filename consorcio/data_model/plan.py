from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping


class Category(str, Enum):
    AUTOMOBILE = "Automobile"
    SERVICES = "Services"
    REAL_ESTATE = "RealEstate"
    MOTORCYCLE = "Motorcycle"
    TRUCK = "Truck"

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self]

    @classmethod
    def default(cls) -> "Category":
        return cls.AUTOMOBILE

    @classmethod
    def parse(cls, value: Any) -> "Category | None":
        """Resolve an enum value, member name or Portuguese label; None when unknown."""
        if isinstance(value, Category):
            return value
        if not isinstance(value, str):
            return None
        text = value.strip()
        for member in cls:
            if text in (member.value, member.name, member.label):
                return member
        return None


# pt-BR display labels; also accepted when parsing.
CATEGORY_LABELS: Dict[Category, str] = {
    Category.AUTOMOBILE: "Automóvel",
    Category.SERVICES: "Serviços",
    Category.REAL_ESTATE: "Imóvel",
    Category.MOTORCYCLE: "Moto",
    Category.TRUCK: "Caminhão",
}

CATEGORIES: List[str] = [member.value for member in Category]

# Exchange field name -> accepted keys, first match wins.
FIELD_ALIASES: Dict[str, tuple[str, ...]] = {
    "id": ("id",),
    "administrator": ("administrator", "administradora"),
    "category": ("category", "tipo"),
    "creditValue": ("creditValue", "valorCarta"),
    "installmentValue": ("installmentValue", "valorParcela"),
    "termMonths": ("termMonths", "prazo"),
    "adminFeePercent": ("adminFeePercent", "taxaAdm"),
    "averageBidPercent": ("averageBidPercent", "mediaLance"),
    "group": ("group", "grupo"),
    "notes": ("notes", "observacoes"),
    "updatedAt": ("updatedAt", "atualizadoEm"),
}


def extract_value(payload: Mapping[str, Any], name: str, default=None):
    for key in FIELD_ALIASES.get(name, (name,)):
        if key in payload and payload[key] is not None:
            return payload[key]
    return default


def coerce_amount(value: Any) -> float:
    """Numeric conversion for money, percentages and terms.

    Missing, non-numeric, non-finite and negative inputs all become 0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return 0.0
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return 0.0
    else:
        return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def coerce_term(value: Any) -> int:
    return int(coerce_amount(value))


def coerce_optional_text(value: Any) -> str | None:
    if not value:
        return None
    text = str(value).strip()
    return text or None


def timestamp_now(clock=None) -> str:
    moment = clock() if clock else datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime | None:
    try:
        moment = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


@dataclass
class PlanDraft:
    """Editable plan fields, as submitted by the registration form."""

    administrator: str = ""
    category: Category | None = Category.AUTOMOBILE
    credit_value: float = 0.0
    installment_value: float = 0.0
    term_months: int = 60
    admin_fee_percent: float = 15.0
    average_bid_percent: float = 20.0
    group: str | None = None
    notes: str | None = None

    def missing_fields(self) -> List[str]:
        missing: List[str] = []
        if not str(self.administrator or "").strip():
            missing.append("administrator")
        if self.category is None:
            missing.append("category")
        if not self.credit_value or self.credit_value <= 0:
            missing.append("creditValue")
        if not self.term_months or self.term_months <= 0:
            missing.append("termMonths")
        return missing

    def is_valid(self) -> bool:
        return not self.missing_fields()

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "PlanDraft":
        """Build a draft from a JSON form payload (camelCase or legacy keys)."""
        raw_category = extract_value(payload, "category")
        return cls(
            administrator=str(extract_value(payload, "administrator", "")).strip(),
            category=Category.parse(raw_category) if raw_category is not None else None,
            credit_value=coerce_amount(extract_value(payload, "creditValue")),
            installment_value=coerce_amount(extract_value(payload, "installmentValue")),
            term_months=coerce_term(extract_value(payload, "termMonths")),
            admin_fee_percent=coerce_amount(extract_value(payload, "adminFeePercent")),
            average_bid_percent=coerce_amount(extract_value(payload, "averageBidPercent")),
            group=coerce_optional_text(extract_value(payload, "group")),
            notes=coerce_optional_text(extract_value(payload, "notes")),
        )


@dataclass(frozen=True)
class Plan:
    id: str
    administrator: str
    category: Category
    credit_value: float
    installment_value: float = 0.0
    term_months: int = 0
    admin_fee_percent: float = 0.0
    average_bid_percent: float = 0.0
    group: str | None = None
    notes: str | None = None
    updated_at: str = field(default_factory=timestamp_now)

    @classmethod
    def from_draft(cls, plan_id: str, draft: PlanDraft, updated_at: str) -> "Plan":
        return cls(
            id=plan_id,
            administrator=str(draft.administrator).strip(),
            category=draft.category or Category.default(),
            credit_value=float(draft.credit_value),
            installment_value=float(draft.installment_value or 0.0),
            term_months=int(draft.term_months),
            admin_fee_percent=float(draft.admin_fee_percent or 0.0),
            average_bid_percent=float(draft.average_bid_percent or 0.0),
            group=coerce_optional_text(draft.group),
            notes=coerce_optional_text(draft.notes),
            updated_at=updated_at,
        )

    def to_draft(self) -> PlanDraft:
        return PlanDraft(
            administrator=self.administrator,
            category=self.category,
            credit_value=self.credit_value,
            installment_value=self.installment_value,
            term_months=self.term_months,
            admin_fee_percent=self.admin_fee_percent,
            average_bid_percent=self.average_bid_percent,
            group=self.group,
            notes=self.notes,
        )

    def with_id(self, plan_id: str) -> "Plan":
        return replace(self, id=plan_id)

    def average_bid_amount(self) -> float:
        return (self.average_bid_percent / 100.0) * self.credit_value

    def estimated_total_paid(self) -> float | None:
        if self.installment_value and self.term_months:
            return self.installment_value * self.term_months
        return None

    def search_text(self) -> str:
        return f"{self.administrator} {self.category.value} {self.group or ''} {self.notes or ''}".lower()

    def to_record(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "id": self.id,
            "administrator": self.administrator,
            "category": self.category.value,
            "creditValue": self.credit_value,
            "installmentValue": self.installment_value,
            "termMonths": self.term_months,
            "adminFeePercent": self.admin_fee_percent,
            "averageBidPercent": self.average_bid_percent,
        }
        if self.group:
            record["group"] = self.group
        if self.notes:
            record["notes"] = self.notes
        record["updatedAt"] = self.updated_at
        return record
