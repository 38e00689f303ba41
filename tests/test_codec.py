import json
from datetime import date

import pytest

from consorcio.data_model import Category
from consorcio.engine.state import PlanStore
from consorcio.engine.storage import STORAGE_KEY, MemoryStorage
from consorcio.exchange.codec import (
    FormatError,
    decode_plans,
    encode_plans,
    export_catalog,
    export_filename,
    import_catalog,
    import_file,
    normalize_record,
)


def test_export_covers_whole_catalog_with_dated_filename():
    store = PlanStore(MemoryStorage())

    artifact = export_catalog(store, today=date(2024, 3, 9))

    assert artifact.filename == "planos-consorcio-2024-03-09.json"
    assert artifact.media_type == "application/json"
    records = json.loads(artifact.payload.decode("utf-8"))
    assert [r["id"] for r in records] == [p.id for p in store.list()]
    assert set(records[0]) == {
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
    }


def test_export_filename_defaults_to_today():
    assert export_filename() == f"planos-consorcio-{date.today().isoformat()}.json"


def test_absent_group_and_notes_are_omitted():
    plan = normalize_record({"id": "x", "administrator": "Ademicon", "creditValue": 1000, "termMonths": 10})

    record = json.loads(encode_plans([plan]))[0]

    assert "group" not in record
    assert "notes" not in record


def test_import_export_round_trip():
    source = PlanStore(MemoryStorage())
    exported = export_catalog(source).payload
    target = PlanStore(MemoryStorage(), seed=False)

    import_catalog(target, exported)

    assert target.list() == source.list()


def test_import_replaces_catalog_and_prunes_selection():
    store = PlanStore(MemoryStorage())
    store.selection.toggle(store.list()[0].id)
    document = json.dumps([{"id": "new", "administrator": "Itaú", "category": "Truck", "creditValue": 1, "termMonths": 1}])

    plans = import_catalog(store, document)

    assert [p.id for p in plans] == ["new"]
    assert [p.id for p in store.list()] == ["new"]
    assert store.selection.ids() == ()


@pytest.mark.parametrize("raw", ['{"a":1}', "not json", "", "42", "[1, 2]"])
def test_bad_documents_leave_store_untouched(raw):
    storage = MemoryStorage()
    store = PlanStore(storage)
    before = store.list()
    persisted = storage.get(STORAGE_KEY)

    with pytest.raises(FormatError):
        import_catalog(store, raw)

    assert store.list() == before
    assert storage.get(STORAGE_KEY) == persisted


def test_oversized_numbers_are_coerced_to_zero():
    store = PlanStore(MemoryStorage(), seed=False)
    raw = '[{"administrator": "X", "creditValue": 1' + "0" * 400 + ', "termMonths": 60}]'

    plans = import_catalog(store, raw)

    assert plans[0].credit_value == 0.0
    assert store.list()[0].term_months == 60


def test_normalize_record_coerces_defensively():
    plan = normalize_record(
        {
            "administrator": 123,
            "category": "Boat",
            "creditValue": "50000",
            "installmentValue": "abc",
            "termMonths": 84.9,
            "adminFeePercent": -3,
            "averageBidPercent": None,
            "group": 0,
            "notes": "  ",
        },
        now="2024-01-01T00:00:00.000Z",
    )

    assert plan.id
    assert plan.administrator == "123"
    assert plan.category is Category.AUTOMOBILE
    assert plan.credit_value == 50000.0
    assert plan.installment_value == 0.0
    assert plan.term_months == 84
    assert plan.admin_fee_percent == 0.0
    assert plan.average_bid_percent == 0.0
    assert plan.group is None
    assert plan.notes is None
    assert plan.updated_at == "2024-01-01T00:00:00.000Z"


def test_normalize_record_keeps_given_id_and_timestamp():
    plan = normalize_record({"id": "keep", "category": "Motorcycle", "updatedAt": "2023-07-01T10:00:00.000Z"})

    assert plan.id == "keep"
    assert plan.category is Category.MOTORCYCLE
    assert plan.updated_at == "2023-07-01T10:00:00.000Z"
    assert plan.administrator == ""


def test_legacy_portuguese_records_are_accepted():
    legacy = [
        {
            "id": "k2x9",
            "administradora": "Rodobens",
            "tipo": "Imóvel",
            "valorCarta": 300000,
            "valorParcela": 2850,
            "prazo": 200,
            "taxaAdm": 18,
            "mediaLance": 35,
            "grupo": "IM-22",
            "observacoes": "Residencial",
            "atualizadoEm": "2024-02-01T08:00:00.000Z",
        }
    ]

    (plan,) = decode_plans(json.dumps(legacy))

    assert plan.administrator == "Rodobens"
    assert plan.category is Category.REAL_ESTATE
    assert plan.term_months == 200
    assert plan.group == "IM-22"
    assert plan.updated_at == "2024-02-01T08:00:00.000Z"


def test_duplicate_ids_in_document_are_regenerated():
    plans = decode_plans(json.dumps([{"id": "same"}, {"id": "same"}, {}]))

    assert plans[0].id == "same"
    assert len({p.id for p in plans}) == 3


def test_import_file_reads_utf8_with_bom(tmp_path):
    path = tmp_path / "planos.json"
    path.write_bytes("\ufeff".encode("utf-8") + json.dumps([{"id": "a", "administrator": "Caixa"}]).encode("utf-8"))
    store = PlanStore(MemoryStorage(), seed=False)

    import_file(store, str(path))

    assert store.get("a").administrator == "Caixa"
