from decimal import Decimal

import pytest

pytest.importorskip("httpx")

HEADERS = {"X-User-Id": "USR-7", "X-User-Name": "Rina", "X-User-Role": "cashier"}


def _create_account(client, name, initial_balance="0"):
    response = client.post(
        "/api/v1/accounts",
        json={"name": name, "initial_balance": initial_balance, "is_payment_account": True},
        headers=HEADERS,
    )
    assert response.status_code == 201, response.text
    return response.json()


def _create_product(client):
    material = client.post(
        "/api/v1/materials",
        json={"name": "Kertas A3", "type": "Stock", "unit": "lembar", "stock": "10"},
        headers=HEADERS,
    ).json()
    response = client.post(
        "/api/v1/products",
        json={
            "name": "Brosur",
            "base_price": "5000",
            "materials": [{"material_id": material["id"], "quantity": "2"}],
        },
        headers=HEADERS,
    )
    assert response.status_code == 201, response.text
    return response.json(), material


def test_root(api_client):
    assert api_client.get("/").status_code == 200


def test_account_money_is_serialized_as_strings(api_client):
    account = _create_account(api_client, "Kas Kecil", "500000")

    assert account["balance"] == "500000.00"
    assert account["initial_balance"] == "500000.00"

    listing = api_client.get("/api/v1/accounts", params={"payment_only": True}).json()
    assert listing["total"] == 1

    duplicate = api_client.post("/api/v1/accounts", json={"name": "Kas Kecil"})
    assert duplicate.status_code == 400


def test_missing_account_is_404(api_client):
    response = api_client.get("/api/v1/accounts/ACC-NOPE")

    assert response.status_code == 404
    assert response.json()["success"] is False


def test_manual_cash_and_balance_summary(api_client):
    account = _create_account(api_client, "Kas Kecil", "500000")

    for direction, amount in (("in", "125000"), ("out", "25000")):
        response = api_client.post(
            "/api/v1/cash-flow/manual",
            json={"account_id": account["id"], "amount": amount, "direction": direction, "description": "manual"},
            headers=HEADERS,
        )
        assert response.status_code == 201, response.text
    assert response.json()["category_label"] == "Kas Keluar"
    assert response.json()["created_by_name"] == "Rina"

    balance = api_client.get("/api/v1/cash-flow/balance").json()
    assert balance["total_current_balance"] == "600000.00"
    assert balance["total_previous_balance"] == "500000.00"
    assert balance["today_net"] == "100000.00"

    history = api_client.get("/api/v1/cash-flow", params={"account_id": account["id"]}).json()
    assert history["count"] == 2
    assert history["total_dic"] == {"total_in": "125000.00", "total_out": "25000.00", "net": "100000.00"}


def test_transfer_validation_and_result(api_client):
    kas = _create_account(api_client, "Kas Kecil", "100000")
    bank = _create_account(api_client, "Bank", "0")

    same = api_client.post(
        "/api/v1/cash-flow/transfer",
        json={"from_account_id": kas["id"], "to_account_id": kas["id"], "amount": "10"},
    )
    assert same.status_code == 422

    too_much = api_client.post(
        "/api/v1/cash-flow/transfer",
        json={"from_account_id": kas["id"], "to_account_id": bank["id"], "amount": "100001"},
    )
    assert too_much.status_code == 400

    ok = api_client.post(
        "/api/v1/cash-flow/transfer",
        json={"from_account_id": kas["id"], "to_account_id": bank["id"], "amount": "40000"},
        headers=HEADERS,
    )
    assert ok.status_code == 201, ok.text
    assert ok.json()["reference_number"].startswith("TRANSFER-")
    assert api_client.get(f"/api/v1/accounts/{bank['id']}").json()["balance"] == "40000.00"


def test_transaction_lifecycle(api_client):
    kas = _create_account(api_client, "Kas Kecil", "0")
    product, material = _create_product(api_client)

    created = api_client.post(
        "/api/v1/transactions",
        json={
            "customer_name": "Budi",
            "items": [{"product_id": product["id"], "quantity": "3"}],
            "paid_amount": "5000",
            "payment_account_id": kas["id"],
        },
        headers=HEADERS,
    )
    assert created.status_code == 201, created.text
    trx = created.json()
    assert trx["total"] == "15000.00"
    assert trx["remaining_amount"] == "10000.00"
    assert trx["payment_status"] == "Belum Lunas"
    assert trx["cashier_name"] == "Rina"

    moved = api_client.patch(f"/api/v1/transactions/{trx['id']}/status", json={"status": "Proses Produksi"})
    assert moved.status_code == 200, moved.text
    assert moved.json()["materials_processed_at"] is not None
    assert api_client.get(f"/api/v1/materials/{material['id']}").json()["remaining_stock"] == "4.00"

    back = api_client.patch(f"/api/v1/transactions/{trx['id']}/status", json={"status": "Pesanan Masuk"})
    assert back.status_code == 400

    paid = api_client.post(
        f"/api/v1/transactions/{trx['id']}/payments",
        json={"account_id": kas["id"], "amount": "10000"},
    )
    assert paid.json()["payment_status"] == "Lunas"

    movements = api_client.get("/api/v1/materials/movements", params={"reference_id": trx["id"]}).json()
    assert movements["count"] == 1
    assert movements["data"][0]["quantity"] == "6.00"
    assert movements["data"][0]["transaction"]["customer_name"] == "Budi"

    deleted = api_client.delete(f"/api/v1/transactions/{trx['id']}")
    assert deleted.status_code == 200
    assert deleted.json()["balance_reversals"] == {kas["id"]: "-15000.00"}
    assert api_client.get(f"/api/v1/accounts/{kas['id']}").json()["balance"] == "0.00"


def test_transaction_payment_requires_account(api_client):
    product, _ = _create_product(api_client)

    response = api_client.post(
        "/api/v1/transactions",
        json={"customer_name": "Budi", "items": [{"product_id": product["id"], "quantity": "1"}], "paid_amount": "100"},
    )
    assert response.status_code == 422

    unknown = api_client.post(
        "/api/v1/transactions",
        json={
            "customer_name": "Budi",
            "items": [{"product_id": product["id"], "quantity": "1"}],
            "paid_amount": "100",
            "payment_account_id": "ACC-NOPE",
        },
    )
    assert unknown.status_code == 404
    assert api_client.get("/api/v1/transactions").json()["total"] == 0


def test_purchase_order_flow(api_client):
    bank = _create_account(api_client, "Bank", "1000000")
    _, material = _create_product(api_client)

    po = api_client.post(
        "/api/v1/purchase-orders", json={"material_id": material["id"], "quantity": "50"}, headers=HEADERS
    ).json()
    assert po["status"] == "Pending"
    assert po["requested_by"] == "Rina"

    assert api_client.post(f"/api/v1/purchase-orders/{po['id']}/review", json={"approve": True}).status_code == 200
    paid = api_client.post(
        f"/api/v1/purchase-orders/{po['id']}/pay", json={"account_id": bank["id"], "total_cost": "125000"}
    )
    assert paid.json()["status"] == "Dibayar"

    received = api_client.post(f"/api/v1/purchase-orders/{po['id']}/receive")
    assert received.status_code == 200, received.text
    assert received.json()["movement"]["new_stock"] == "60.00"
    assert api_client.post(f"/api/v1/purchase-orders/{po['id']}/receive").status_code == 400

    expenses = api_client.get("/api/v1/expenses", params={"category": "Pembayaran PO"}).json()
    assert expenses["total"] == 1
    assert expenses["total_amount"] == "125000.00"


def test_daily_report_and_maintenance(api_client):
    kas = _create_account(api_client, "Kas Kecil", "0")
    product, _ = _create_product(api_client)
    api_client.post(
        "/api/v1/transactions",
        json={
            "customer_name": "Sari",
            "items": [{"product_id": product["id"], "quantity": "2"}],
            "paid_amount": "4000",
            "payment_account_id": kas["id"],
        },
    )

    report = api_client.get("/api/v1/cash-flow/daily-report").json()
    assert report["cash_in"] == "4000.00"
    assert report["sales_summary"]["total_sales"] == "10000.00"
    assert report["sales_summary"]["total_credit"] == "6000.00"
    assert report["cash_flow_by_account"] == [{"account_name": "Kas Kecil", "cash_in": "4000.00", "cash_out": "0.00"}]

    backfill = api_client.post("/api/v1/maintenance/backfill-transactions", params={"dry_run": True}).json()
    assert backfill == {"operation": "backfill_transactions", "affected": 0, "dry_run": True}

    drift = api_client.get("/api/v1/accounts/drift").json()
    assert drift[0]["drift"] == "0.00"


def test_employee_advance_endpoints(api_client):
    kas = _create_account(api_client, "Kas Kecil", "300000")

    advance = api_client.post(
        "/api/v1/employee-advances",
        json={"employee_id": "EMP-1", "employee_name": "Andi", "amount": "100000", "account_id": kas["id"]},
        headers=HEADERS,
    )
    assert advance.status_code == 201, advance.text

    repaid = api_client.post(
        f"/api/v1/employee-advances/{advance.json()['id']}/repayments", json={"amount": "40000"}, headers=HEADERS
    )
    assert repaid.json()["remaining_amount"] == "60000.00"
    assert repaid.json()["repayments"][0]["recorded_by"] == "Rina"

    listing = api_client.get("/api/v1/employee-advances", params={"outstanding_only": True}).json()
    assert listing["total_outstanding"] == "60000.00"
    assert Decimal(api_client.get(f"/api/v1/accounts/{kas['id']}").json()["balance"]) == Decimal("240000")
