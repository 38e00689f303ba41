import io
import json

import pytest

from consorcio.backend import create_app
from consorcio.config import Settings
from consorcio.engine.state import PlanStore
from consorcio.engine.storage import MemoryStorage


@pytest.fixture
def store():
    return PlanStore(MemoryStorage())


@pytest.fixture
def client(store):
    app = create_app(store=store)
    app.config["TESTING"] = True
    return app.test_client()


def test_healthcheck_sets_cors_headers(client):
    response = client.get("/api/health")

    assert response.get_json() == {"status": "ok"}
    assert response.headers["Access-Control-Allow-Origin"] == "*"


def test_schema_lists_categories_and_required_fields(client):
    payload = client.get("/api/schema").get_json()

    assert [c["value"] for c in payload["categories"]] == ["Automobile", "Services", "RealEstate", "Motorcycle", "Truck"]
    assert payload["categories"][0]["label"] == "Automóvel"
    assert payload["plans"]["required"] == ["administrator", "category", "creditValue", "termMonths"]
    assert payload["plans"]["formDefaults"]["termMonths"] == 60
    assert payload["selectionCapacity"] == 4


def test_list_plans_with_category_filter(client):
    payload = client.get("/api/plans?category=Automobile").get_json()

    assert [(p["administrator"], p["creditValue"]) for p in payload["plans"]] == [
        ("Rodobens", 60000.0),
        ("Porto Seguro", 100000.0),
    ]
    assert payload["count"] == 2
    assert payload["total"] == 4
    assert payload["administrators"] == ["Porto Seguro", "Rodobens"]


def test_list_plans_rejects_bad_filters(client):
    response = client.get("/api/plans?creditMin=lots")

    assert response.status_code == 400
    assert client.get("/api/plans?bidMax=inf").status_code == 400


def test_create_update_and_get(client, store):
    created = client.post(
        "/api/plans",
        json={"administrator": "Embracon", "category": "Truck", "creditValue": 250000, "termMonths": 100},
    )
    assert created.status_code == 201
    plan_id = created.get_json()["plan"]["id"]
    assert store.list()[0].id == plan_id

    updated = client.put(
        f"/api/plans/{plan_id}",
        json={"administrator": "Embracon", "category": "Services", "creditValue": 90000, "termMonths": 50, "notes": "Reforma"},
    )
    assert updated.status_code == 200
    fetched = client.get(f"/api/plans/{plan_id}").get_json()
    assert fetched["category"] == "Services"
    assert fetched["notes"] == "Reforma"
    assert "group" not in fetched


def test_create_rejection_reports_missing_fields(client, store):
    response = client.post("/api/plans", json={"administrator": "", "category": "Automobile", "creditValue": 0, "termMonths": 12})

    assert response.status_code == 400
    assert response.get_json()["missingFields"] == ["administrator", "creditValue"]
    assert len(store.list()) == 4


def test_unknown_plan_returns_404(client):
    assert client.get("/api/plans/nope").status_code == 404
    assert client.put("/api/plans/nope", json={}).status_code == 404
    assert client.post("/api/selection/nope").status_code == 404


def test_delete_requires_confirmation(client, store):
    plan_id = store.list()[0].id
    client.post(f"/api/selection/{plan_id}")

    declined = client.delete(f"/api/plans/{plan_id}").get_json()
    assert declined["deleted"] is False
    assert store.get(plan_id) is not None

    confirmed = client.delete(f"/api/plans/{plan_id}?confirm=true").get_json()
    assert confirmed["deleted"] is True
    assert confirmed["selection"] == []
    assert store.get(plan_id) is None


def test_selection_toggle_and_comparison(client, store):
    ids = [plan.id for plan in store.list()]
    for plan_id in reversed(ids):
        client.post(f"/api/selection/{plan_id}")

    comparison = client.get("/api/comparison").get_json()

    assert [c["id"] for c in comparison["columns"]] == list(reversed(ids))
    bid_row = next(row for row in comparison["rows"] if row["key"] == "averageBid")
    assert bid_row["values"][-1] == {"percent": 25.0, "amount": 15000.0}

    toggled = client.post(f"/api/selection/{ids[0]}").get_json()
    assert toggled["selected"] is False
    client.delete("/api/selection")
    assert client.get("/api/selection").get_json()["selection"] == []


def test_bid_estimate(client):
    assert client.get("/api/bid-estimate?creditValue=60000&percent=25").get_json()["bid"] == 15000.0
    assert client.get("/api/bid-estimate?creditValue=60000&percent=25&fixedAmount=5000").get_json()["bid"] == 5000.0
    assert client.get("/api/bid-estimate?creditValue=abc").status_code == 400
    assert client.get("/api/bid-estimate?creditValue=nan").status_code == 400
    assert client.get("/api/bid-estimate?creditValue=1000&percent=inf").status_code == 400


def test_export_is_an_attachment(client, store):
    response = client.get("/api/export")

    disposition = response.headers["Content-Disposition"]
    assert disposition.startswith('attachment; filename="planos-consorcio-')
    assert len(json.loads(response.data)) == len(store.list())


def test_import_upload_replaces_catalog(client, store):
    document = json.dumps([{"id": "up1", "administrator": "Caixa", "category": "RealEstate", "creditValue": 200000, "termMonths": 180}])

    response = client.post(
        "/api/import",
        data={"file": (io.BytesIO(document.encode("utf-8")), "planos.json")},
        content_type="multipart/form-data",
    )

    assert response.get_json()["count"] == 1
    assert [p.id for p in store.list()] == ["up1"]


def test_import_rejects_non_array(client, store):
    before = store.list()

    response = client.post("/api/import", data='{"a":1}', content_type="application/json")

    assert response.status_code == 400
    assert response.get_json()["error"] == "Failed to import JSON."
    assert store.list() == before


def test_create_app_builds_store_from_settings(tmp_path):
    settings = Settings(data_dir=str(tmp_path), storage_backend="file", seed_examples=False)

    app = create_app(settings=settings)

    assert app.config["PLAN_STORE"].list() == ()
    assert app.test_client().get("/api/plans").get_json()["total"] == 0
