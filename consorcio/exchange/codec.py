"""JSON exchange format for the plan catalog.

The same document shape is used for export/import files and for the
persisted storage entry: a JSON array of plan records with camelCase
keys. Import is tolerant: every element is coerced field by field, the
way records written by older versions of the catalog (Portuguese keys,
category labels, numbers as strings) are accepted too.
"""
from __future__ import annotations

import json
import logging
import secrets
import string
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, List, Mapping

from consorcio.data_model import (
    Category,
    Plan,
    coerce_amount,
    coerce_optional_text,
    coerce_term,
    extract_value,
    timestamp_now,
)
from consorcio.engine.storage import _sanitize_json_compat

logger = logging.getLogger(__name__)

EXPORT_MEDIA_TYPE = "application/json"
ID_ALPHABET = string.ascii_lowercase + string.digits
ID_LENGTH = 8


class FormatError(ValueError):
    """Raised when an exchange document cannot be turned into plans."""


@dataclass(frozen=True)
class ExportArtifact:
    filename: str
    payload: bytes
    media_type: str = EXPORT_MEDIA_TYPE


def generate_id(existing_ids: Iterable[str] = ()) -> str:
    taken = set(existing_ids)
    while True:
        candidate = "".join(secrets.choice(ID_ALPHABET) for _ in range(ID_LENGTH))
        if candidate not in taken:
            return candidate


def export_filename(today: date | None = None) -> str:
    return f"planos-consorcio-{(today or date.today()).isoformat()}.json"


def encode_plans(plans: Iterable[Plan]) -> str:
    records = [_sanitize_json_compat(plan.to_record()) for plan in plans]
    return json.dumps(records, indent=2, ensure_ascii=False, allow_nan=False)


def normalize_record(raw: Any, existing_ids: Iterable[str] = (), now: str | None = None) -> Plan:
    if not isinstance(raw, Mapping):
        raise FormatError(f"Plan entries must be JSON objects, got {type(raw).__name__}.")

    raw_id = extract_value(raw, "id")
    plan_id = str(raw_id).strip() if raw_id is not None else ""
    if not plan_id:
        plan_id = generate_id(existing_ids)

    category = Category.parse(extract_value(raw, "category")) or Category.default()
    updated_at = extract_value(raw, "updatedAt")

    return Plan(
        id=plan_id,
        administrator=str(extract_value(raw, "administrator", "")),
        category=category,
        credit_value=coerce_amount(extract_value(raw, "creditValue")),
        installment_value=coerce_amount(extract_value(raw, "installmentValue")),
        term_months=coerce_term(extract_value(raw, "termMonths")),
        admin_fee_percent=coerce_amount(extract_value(raw, "adminFeePercent")),
        average_bid_percent=coerce_amount(extract_value(raw, "averageBidPercent")),
        group=coerce_optional_text(extract_value(raw, "group")),
        notes=coerce_optional_text(extract_value(raw, "notes")),
        updated_at=str(updated_at) if updated_at else (now or timestamp_now()),
    )


def decode_plans(raw_text: str | bytes) -> List[Plan]:
    if isinstance(raw_text, bytes):
        raw_text = raw_text.decode("utf-8-sig", errors="replace")
    elif isinstance(raw_text, str):
        raw_text = raw_text.lstrip("\ufeff")
    try:
        data = json.loads(raw_text)
    except (TypeError, ValueError) as exc:
        raise FormatError(f"Invalid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise FormatError("The exchange document must be a JSON array of plans.")

    now = timestamp_now()
    seen: set[str] = set()
    plans: List[Plan] = []
    for position, raw in enumerate(data):
        try:
            plan = normalize_record(raw, existing_ids=seen, now=now)
        except FormatError as exc:
            raise FormatError(f"Entry {position}: {exc}") from exc
        if plan.id in seen:
            plan = plan.with_id(generate_id(seen))
        seen.add(plan.id)
        plans.append(plan)
    return plans


def export_catalog(store, today: date | None = None) -> ExportArtifact:
    """Serialize the whole catalog (not the filtered view) as a download."""
    plans = store.list()
    artifact = ExportArtifact(
        filename=export_filename(today),
        payload=encode_plans(plans).encode("utf-8"),
    )
    logger.info("Exported %d plans to %s", len(plans), artifact.filename)
    return artifact


def import_catalog(store, raw_text: str | bytes) -> List[Plan]:
    """Replace the catalog with the plans in ``raw_text``.

    The document is decoded completely before the store is touched, so a
    FormatError leaves the previous catalog in place.
    """
    try:
        plans = decode_plans(raw_text)
    except FormatError:
        logger.warning("Rejected catalog import", exc_info=True)
        raise
    store.replace_all(plans)
    logger.info("Imported %d plans", len(plans))
    return plans


def import_file(store, path: str) -> List[Plan]:
    with open(path, "rb") as f:
        data = f.read()
    return import_catalog(store, data)
