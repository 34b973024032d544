"""HTTP surface: status codes, error mapping and report payloads."""
import json

from utils.auth_utils import get_current_user
from main import app

STAFF_USER = {"sub": "staff-1", "email": "staff@example.com", "user_role": "user"}


def _material(client, name, opening="0", **extra):
    response = client.post("/materials/", json={"name": name, "opening_stock": opening, **extra})
    assert response.status_code == 201, response.text
    return response.json()


def _party(client, name):
    response = client.post("/parties/", json={"name": name})
    assert response.status_code == 201, response.text
    return response.json()


def _order(client, **payload):
    body = {"items": [{"particular": "Shirt", "quantity": "2", "rate_per_dzn": "500"}], **payload}
    return client.post("/orders/", json=body)


def test_root(client):
    assert client.get("/").status_code == 200


def test_party_prefix_and_next_number(client):
    party = _party(client, "Sri Ganesh Garments")
    assert party["prefix"] == "SGG"
    preview = client.get(f"/parties/{party['id']}/next-order-number").json()
    assert preview["order_number"] == "SGG/001"


def test_duplicate_party_is_rejected(client):
    _party(client, "Kumar Textiles")
    assert client.post("/parties/", json={"name": " kumar textiles "}).status_code == 400


def test_party_with_orders_cannot_be_deleted(client):
    party = _party(client, "Kumar Textiles")
    assert _order(client, party_id=party["id"]).status_code == 201
    assert client.delete(f"/parties/{party['id']}").status_code == 409


def test_order_lifecycle_reports_stock_effects(client):
    thread = _material(client, "Thread White", opening="500")

    created = _order(client, order_date="2024-03-05", deductions=[{"material_name": "Thread White", "quantity": "32"}])
    assert created.status_code == 201, created.text
    order = created.json()
    assert order["order_number"] == "SG/372"
    assert [e["action"] for e in order["stock_effects"]] == ["applied"]
    assert float(client.get(f"/materials/{thread['id']}").json()["current_stock"]) == 468

    edited = client.patch(f"/orders/{order['id']}", json={"deductions": []})
    assert edited.status_code == 200
    assert [e["action"] for e in edited.json()["stock_effects"]] == ["restored"]
    assert float(client.get(f"/materials/{thread['id']}").json()["current_stock"]) == 500

    status = client.patch(f"/orders/{order['id']}/status", json={"status": "completed"})
    assert status.json()["status"] == "completed"

    assert client.delete(f"/orders/{order['id']}").status_code == 200
    assert client.get(f"/orders/{order['id']}").status_code == 404


def test_order_without_items_is_rejected(client):
    assert client.post("/orders/", json={"items": []}).status_code == 400


def test_unknown_order_returns_404(client):
    assert client.patch("/orders/missing", json={"notes": "x"}).status_code == 404
    assert client.delete("/orders/missing").status_code == 404


def test_stock_in_and_out(client):
    button = _material(client, "Button", opening="10")

    stock_in = client.post("/stock-transactions/stock-in", json={
        "material_id": button["id"], "quantity": "90", "source_type": "market_purchase",
        "transaction_date": "2024-01-05",
    })
    assert stock_in.status_code == 201
    assert stock_in.json()["transaction_type"] == "in"
    assert float(stock_in.json()["balance_after"]) == 100

    overdraw = client.post("/stock-transactions/stock-out", json={"material_id": button["id"], "quantity": "101"})
    assert overdraw.status_code == 400

    missing = client.post("/stock-transactions/stock-in", json={"material_id": "nope", "quantity": "1"})
    assert missing.status_code == 404

    bad_source = client.post("/stock-transactions/stock-in", json={
        "material_id": button["id"], "quantity": "1", "source_type": "gift",
    })
    assert bad_source.status_code == 400

    zero = client.post("/stock-transactions/stock-out", json={"material_id": button["id"], "quantity": "0"})
    assert zero.status_code == 422


def test_material_with_history_cannot_be_deleted(client):
    button = _material(client, "Button", opening="10")
    client.post("/stock-transactions/stock-in", json={"material_id": button["id"], "quantity": "5"})
    assert client.delete(f"/materials/{button['id']}").status_code == 409

    spare = _material(client, "Spare")
    assert client.delete(f"/materials/{spare['id']}").status_code == 200


def test_material_wise_report(client):
    cotton = _material(client, "Cotton White", opening="500")
    client.post("/stock-transactions/stock-in", json={
        "material_id": cotton["id"], "quantity": "100", "transaction_date": "2024-02-01",
    })
    client.post("/stock-transactions/stock-out", json={
        "material_id": cotton["id"], "quantity": "30", "transaction_date": "2024-02-03",
    })

    january = client.get("/stock-reports/material-wise", params={"start_date": "2024-01-01", "end_date": "2024-01-31"}).json()
    row = january["rows"][0]
    assert (float(row["opening"]), float(row["total_in"]), float(row["total_out"]), float(row["closing"])) == (500, 0, 0, 500)

    february = client.get("/stock-reports/material-wise", params={"start_date": "2024-02-01", "end_date": "2024-02-29"}).json()
    row = february["rows"][0]
    assert float(row["opening"]) == 500
    assert float(row["closing"]) == 570


def test_report_rejects_inverted_window(client):
    response = client.get("/stock-reports/material-wise", params={"start_date": "2024-02-01", "end_date": "2024-01-01"})
    assert response.status_code == 400


def test_party_and_order_reports(client):
    thread = _material(client, "Thread White", opening="500")
    party = _party(client, "Sri Ganesh Garments")
    client.post("/stock-transactions/stock-in", json={
        "material_id": thread["id"], "quantity": "40", "source_type": "party_supply",
        "party_id": party["id"], "transaction_date": "2024-03-01",
    })
    _order(client, party_id=party["id"], order_date="2024-03-05",
           deductions=[{"material_name": "Thread White", "quantity": "32"}])

    window = {"start_date": "2024-03-01", "end_date": "2024-03-31"}
    party_rows = client.get("/stock-reports/party-wise", params=window).json()["rows"]
    assert len(party_rows) == 1
    assert (float(party_rows[0]["received"]), float(party_rows[0]["used"])) == (40, 32)

    order_rows = client.get("/stock-reports/order-wise", params=window).json()["rows"]
    assert [r["order_number"] for r in order_rows] == ["SGG/001"]

    ledger = client.get("/stock-reports/ledger", params={**window, "material_id": thread["id"]}).json()
    assert [float(r["balance"]) for r in ledger["rows"]] == [540, 508]

    card = client.get(f"/materials/{thread['id']}/ledger", params=window).json()
    assert float(card["closing"]) == float(card["current_stock"]) == 508


def test_dashboard(client):
    _material(client, "Zip", opening="2", min_stock="5")
    _order(client)
    dashboard = client.get("/stock-reports/dashboard").json()
    assert dashboard["total_orders"] == 1
    assert dashboard["pending_orders"] == 1
    assert [m["material_name"] for m in dashboard["low_stock"]] == ["Zip"]


def test_reference_data_in_use_conflict(client):
    unit = client.post("/units/", json={"name": "Mtr"}).json()
    _material(client, "Lace", unit="Mtr")
    assert client.delete(f"/units/{unit['id']}").status_code == 409


def test_ledger_maintenance_requires_admin(client):
    app.dependency_overrides[get_current_user] = lambda: STAFF_USER
    assert client.post("/stock-ledger/initialize").status_code == 403
    assert client.get("/stock-ledger/status").status_code == 403


def test_ledger_maintenance(client):
    _material(client, "Cotton White", opening="500")
    assert client.post("/stock-ledger/initialize").json()["inserted"] == 1
    assert client.post("/stock-ledger/initialize").json()["already_initialized"] is True

    status = client.get("/stock-ledger/status").json()
    assert status == {"transaction_count": 1, "legacy_type_count": 0}

    reconcile = client.post("/stock-ledger/reconcile").json()
    assert reconcile["drift"] == []

    logs = client.get("/stock-ledger/audit-logs", params={"table_name": "materials"}).json()
    assert logs[0]["action"] == "CREATE"


def test_backup_export_validate_restore(client):
    _material(client, "Thread White", opening="500")
    exported = client.get("/backup/export").json()

    payload = json.dumps(exported).encode()
    validation = client.post("/backup/validate", files={"file": ("backup.json", payload, "application/json")}).json()
    assert validation["is_valid"] is True
    assert validation["counts"]["materials"] == 1

    restored = client.post("/backup/restore", files={"file": ("backup.json", payload, "application/json")})
    assert restored.status_code == 200
    assert restored.json()["restored"]["materials"] == 1

    broken = dict(exported, materials=[{"id": "x"}])
    response = client.post("/backup/restore", files={"file": ("b.json", json.dumps(broken).encode(), "application/json")})
    assert response.status_code == 422
    assert response.json()["detail"]["errors"]

    garbage = client.post("/backup/validate", files={"file": ("b.json", b"{not json", "application/json")})
    assert garbage.status_code == 400


def test_configuration_defaults(client):
    created = client.post("/configurations/initialize").json()
    assert set(created["new_configs"]) == {"ledger_inception_date", "low_stock_alert_enabled"}
    configs = client.get("/configurations/", params={"name": "ledger_inception_date"}).json()
    assert configs[0]["value"] == "2000-01-01"


def test_deleting_a_transaction_reverses_it(client):
    button = _material(client, "Button", opening="10")
    entry = client.post("/stock-transactions/stock-in", json={"material_id": button["id"], "quantity": "15"}).json()
    assert float(client.get(f"/materials/{button['id']}").json()["current_stock"]) == 25

    assert client.delete(f"/stock-transactions/{entry['id']}").status_code == 200
    assert float(client.get(f"/materials/{button['id']}").json()["current_stock"]) == 10
    assert client.get(f"/stock-transactions/{entry['id']}").status_code == 404
