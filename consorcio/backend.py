"""REST backend for the consórcio plan catalog."""

from __future__ import annotations

import logging
import math
import os
import sys
from typing import Any, Dict

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if BASE_DIR not in sys.path:
    sys.path.insert(0, BASE_DIR)

from flask import Blueprint, Flask, Response, current_app, jsonify, request

from consorcio.config import Settings, configure_logging
from consorcio.data_model import Category, PlanDraft, PlanTableModel
from consorcio.engine.comparison import compare_selection, estimate_bid
from consorcio.engine.filters import FilterCriteria, apply_filters
from consorcio.engine.state import NotFound, PlanStore, ValidationRejected
from consorcio.engine.storage import JsonFileStorage, MemoryStorage
from consorcio.exchange.codec import FormatError, export_catalog, import_catalog

logger = logging.getLogger(__name__)

PLAN_MODEL = PlanTableModel()

api = Blueprint("api", __name__, url_prefix="/api")


def build_store(settings: Settings) -> PlanStore:
    if settings.storage_backend == "memory":
        storage = MemoryStorage()
    else:
        storage = JsonFileStorage(settings.data_dir)
    return PlanStore(storage, key=settings.storage_key, seed=settings.seed_examples)


def _store() -> PlanStore:
    return current_app.config["PLAN_STORE"]


def _plan_payload(plan, store: PlanStore) -> Dict[str, Any]:
    payload = plan.to_record()
    payload["selected"] = plan.id in store.selection
    return payload


def _rejected(outcome: ValidationRejected):
    return jsonify({"error": "Required fields are missing.", "missingFields": outcome.missing_fields}), 400


def _not_found(plan_id: str):
    return jsonify({"error": "Plan not found.", "id": plan_id}), 404


def _optional_float(name: str) -> float | None:
    value = request.args.get(name)
    if value is None or not value.strip():
        return None
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"Invalid number for {name}: {value}")
    return number


@api.after_app_request
def apply_cors_headers(response):
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type"
    return response


@api.get("/health")
def healthcheck():
    return jsonify({"status": "ok"})


@api.get("/schema")
def get_schema():
    return jsonify(
        {
            "plans": {
                "name": PLAN_MODEL.name,
                "columns": [col.to_payload() for col in PLAN_MODEL.columns],
                "required": PLAN_MODEL.required_fields(),
                "formDefaults": PLAN_MODEL.default_record(),
                "examples": PLAN_MODEL.default_rows,
            },
            "categories": [
                {"value": category.value, "label": category.label}
                for category in Category
            ],
            "selectionCapacity": _store().selection.capacity,
        }
    )


@api.get("/plans")
def list_plans():
    store = _store()
    try:
        criteria = FilterCriteria.from_mapping(request.args)
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400
    plans = store.list()
    results = apply_filters(plans, criteria)
    return jsonify(
        {
            "plans": [_plan_payload(plan, store) for plan in results],
            "count": len(results),
            "total": len(plans),
            "administrators": store.administrators(),
            "selection": list(store.selection.ids()),
        }
    )


@api.get("/plans/<plan_id>")
def get_plan(plan_id: str):
    store = _store()
    plan = store.get(plan_id)
    if plan is None:
        return _not_found(plan_id)
    return jsonify(_plan_payload(plan, store))


@api.post("/plans")
def create_plan():
    store = _store()
    payload = request.get_json(silent=True) or {}
    outcome = store.create(PlanDraft.from_mapping(payload))
    if isinstance(outcome, ValidationRejected):
        return _rejected(outcome)
    return jsonify({"message": "Plan created.", "plan": _plan_payload(outcome.plan, store)}), 201


@api.put("/plans/<plan_id>")
def update_plan(plan_id: str):
    store = _store()
    payload = request.get_json(silent=True) or {}
    outcome = store.update(plan_id, PlanDraft.from_mapping(payload))
    if isinstance(outcome, NotFound):
        return _not_found(plan_id)
    if isinstance(outcome, ValidationRejected):
        return _rejected(outcome)
    return jsonify({"message": "Plan updated.", "plan": _plan_payload(outcome.plan, store)})


@api.delete("/plans/<plan_id>")
def delete_plan(plan_id: str):
    store = _store()
    confirmed = request.args.get("confirm", "false").lower() in {"1", "true", "yes"}
    deleted = store.delete(plan_id, confirm=lambda plan: confirmed)
    return jsonify({"deleted": deleted, "selection": list(store.selection.ids())})


@api.get("/selection")
def get_selection():
    selection = _store().selection
    return jsonify({"selection": list(selection.ids()), "capacity": selection.capacity})


@api.post("/selection/<plan_id>")
def toggle_selection(plan_id: str):
    store = _store()
    if store.get(plan_id) is None:
        return _not_found(plan_id)
    selected = store.selection.toggle(plan_id)
    return jsonify(
        {
            "id": plan_id,
            "selected": selected,
            "selection": list(store.selection.ids()),
            "capacity": store.selection.capacity,
        }
    )


@api.delete("/selection")
def clear_selection():
    _store().selection.clear()
    return jsonify({"selection": []})


@api.get("/comparison")
def get_comparison():
    table = compare_selection(_store())
    return jsonify(table.to_payload())


@api.get("/bid-estimate")
def bid_estimate():
    try:
        credit_value = _optional_float("creditValue") or 0.0
        percent = _optional_float("percent")
        fixed_amount = _optional_float("fixedAmount")
    except ValueError:
        return jsonify({"error": "Invalid bid parameters."}), 400
    amount = estimate_bid(credit_value, percent=percent, fixed_amount=fixed_amount)
    return jsonify({"creditValue": credit_value, "percent": percent, "fixedAmount": fixed_amount, "bid": amount})


@api.get("/export")
def export_plans():
    artifact = export_catalog(_store())
    return Response(
        artifact.payload,
        mimetype=artifact.media_type,
        headers={"Content-Disposition": f'attachment; filename="{artifact.filename}"'},
    )


@api.post("/import")
def import_plans():
    """Replace the catalog with an uploaded JSON export.

    Accepts a multipart ``file`` field or the JSON document as the raw body.
    """
    store = _store()
    if "file" in request.files:
        data = request.files["file"].read()
    else:
        data = request.get_data()
    try:
        plans = import_catalog(store, data)
    except FormatError as exc:
        return jsonify({"error": "Failed to import JSON.", "detail": str(exc)}), 400
    return jsonify({"status": "imported", "count": len(plans), "selection": list(store.selection.ids())})


def create_app(store: PlanStore | None = None, settings: Settings | None = None) -> Flask:
    settings = settings or Settings()
    app = Flask(__name__)
    app.config["SETTINGS"] = settings
    app.config["PLAN_STORE"] = store if store is not None else build_store(settings)
    app.register_blueprint(api)
    return app


if __name__ == "__main__":
    settings = Settings()
    configure_logging(settings.log_level)
    app = create_app(settings=settings)
    logger.info("Serving plan catalog from %s", settings.data_dir)
    app.run(debug=settings.debug, port=settings.port)
