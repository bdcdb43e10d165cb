from decimal import Decimal

from cardledger.models.orders import OrderStatus

ADMIN = {"X-User-Role": "admin", "X-User-Email": "admin@turbo.ly"}


def _company(client, **overrides):
    body = {"name": "Anis Cards", "email": "cards@anis.ly", "phone": "091-0000000"}
    body.update(overrides)
    resp = client.post("/companies/", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _order(client, company_id, amount="1000", cards_count=40):
    resp = client.post(
        "/orders/",
        json={"company_id": company_id, "amount": amount, "cards_count": cards_count},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def _transaction(client, company_id, type_, amount):
    resp = client.post(
        "/transactions/",
        json={"company_id": company_id, "type": type_, "amount": amount},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def _upload_receipt(client, order_id, content=b"receipt-bytes"):
    resp = client.post(
        f"/orders/{order_id}/receipt",
        files={"file": ("receipt.pdf", content, "application/pdf")},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_company_balance_end_to_end(client):
    company = _company(client)
    _order(client, company["id"], amount="1000")
    _transaction(client, company["id"], "Received", "400")

    balance = client.get(f"/companies/{company['id']}/balance").json()
    assert Decimal(balance["total_issued"]) == Decimal("1000")
    assert Decimal(balance["total_collected"]) == Decimal("400")
    assert Decimal(balance["outstanding"]) == Decimal("600")

    detail = client.get(f"/companies/{company['id']}").json()
    assert Decimal(detail["balance"]["outstanding"]) == Decimal("600")
    assert detail["is_high_risk"] is False
    assert detail["whatsapp_url"].startswith("https://wa.me/0910000000?text=")


def test_company_listing_is_paginated_with_balances(client):
    for i in range(3):
        created = _company(client, name=f"Company {i}")
        _order(client, created["id"], amount=str(100 * (i + 1)))

    page = client.get("/companies/", params={"limit": 2, "offset": 0}).json()
    assert page["total"] == 3
    assert len(page["items"]) == 2
    # newest first
    assert page["items"][0]["name"] == "Company 2"
    assert Decimal(page["items"][0]["balance"]["outstanding"]) == Decimal("300")


def test_company_validation(client):
    resp = client.post("/companies/", json={"name": "Bad Cut", "percent_cut": 150})
    assert resp.status_code == 422


def test_maps_url_coordinates_are_extracted(client):
    company = _company(
        client, maps_url="https://www.google.com/maps/place/x/@32.8872,13.1913,17z"
    )
    assert company["latitude"] == 32.8872
    assert company["longitude"] == 13.1913


def test_order_amount_must_be_positive(client):
    company = _company(client)
    resp = client.post(
        "/orders/", json={"company_id": company["id"], "amount": "-5", "cards_count": 1}
    )
    assert resp.status_code == 422


def test_order_for_missing_company_is_not_found(client):
    resp = client.post("/orders/", json={"company_id": 999, "amount": "5", "cards_count": 1})
    assert resp.status_code == 404
    assert resp.json()["kind"] == "not_found"


def test_pending_to_paid_without_receipt_is_rejected(client):
    company = _company(client)
    order = _order(client, company["id"])

    resp = client.patch(f"/orders/{order['id']}/status", json={"status": "Paid"})

    assert resp.status_code == 422
    assert resp.json()["kind"] == "validation"
    assert client.get(f"/orders/{order['id']}").json()["status"] == "Pending"


def test_sent_flow_emails_the_receipt(client, mailer):
    company = _company(client)
    order = _order(client, company["id"])
    attached = _upload_receipt(client, order["id"])
    assert attached["receipt_path"].startswith(f"company_{company['id']}/")

    resp = client.patch(
        f"/orders/{order['id']}/status",
        json={"status": "Sent", "expected_status": "Pending"},
    )

    assert resp.status_code == 200, resp.text
    assert resp.json()["status"] == OrderStatus.SENT.value
    assert mailer.sent[0]["attachments"][0].content == b"receipt-bytes"


def test_email_failure_returns_dependency_error(client, mailer):
    company = _company(client)
    order = _order(client, company["id"])
    _upload_receipt(client, order["id"])
    mailer.fail = True

    resp = client.patch(f"/orders/{order['id']}/status", json={"status": "Sent"})

    assert resp.status_code == 502
    assert resp.json()["kind"] == "dependency"
    assert client.get(f"/orders/{order['id']}").json()["status"] == "Pending"


def test_stale_status_returns_conflict(client):
    company = _company(client)
    order = _order(client, company["id"])
    client.patch(f"/orders/{order['id']}/status", json={"status": "Received"})

    resp = client.patch(
        f"/orders/{order['id']}/status",
        json={"status": "Received", "expected_status": "Pending"},
    )
    assert resp.status_code == 409


def test_replacing_a_receipt_removes_the_old_file(client, files):
    company = _company(client)
    order = _order(client, company["id"])
    first = _upload_receipt(client, order["id"], b"one")["receipt_path"]
    second = _upload_receipt(client, order["id"], b"two")["receipt_path"]

    assert first != second
    assert files.read(second) == b"two"
    assert not (files.root / first).exists()


def test_delete_company_cascades(client, files):
    company = _company(client)
    order = _order(client, company["id"])
    path = _upload_receipt(client, order["id"])["receipt_path"]
    tx = _transaction(client, company["id"], "Received", "10")

    resp = client.delete(f"/companies/{company['id']}")

    assert resp.status_code == 200
    assert client.get(f"/orders/{order['id']}").status_code == 404
    assert client.get(f"/transactions/{tx['id']}").status_code == 404
    assert not (files.root / path).exists()


def test_delete_survives_missing_file(client, files):
    company = _company(client)
    order = _order(client, company["id"])
    path = _upload_receipt(client, order["id"])["receipt_path"]
    (files.root / path).unlink()

    resp = client.delete(f"/orders/{order['id']}")
    assert resp.status_code == 200


def test_order_body_cannot_set_receipt_path(client):
    company = _company(client)
    resp = client.post(
        "/orders/",
        json={
            "company_id": company["id"],
            "amount": "100",
            "cards_count": 5,
            "receipt_path": "no/such/file.pdf",
        },
    )
    assert resp.status_code == 201
    assert resp.json()["receipt_path"] is None

    paid = client.patch(f"/orders/{resp.json()['id']}/status", json={"status": "Paid"})
    assert paid.status_code == 422


def test_deleting_an_order_keeps_other_companies_receipts(client, files):
    other = _company(client, name="Libya Pay", email="pay@libya.ly")
    other_order = _order(client, other["id"])
    other_path = _upload_receipt(client, other_order["id"], b"other")["receipt_path"]

    company = _company(client)
    resp = client.post(
        "/orders/",
        json={
            "company_id": company["id"],
            "amount": "100",
            "cards_count": 5,
            "receipt_path": other_path,
        },
    )
    assert client.delete(f"/orders/{resp.json()['id']}").status_code == 200

    assert files.read(other_path) == b"other"
    assert client.get(f"/orders/{other_order['id']}").json()["receipt_path"] == other_path


def test_independent_transaction_and_update(client):
    tx = _transaction(client, None, "Paid", "75.50")
    assert tx["company_id"] is None

    resp = client.patch(f"/transactions/{tx['id']}", json={"amount": "80", "notes": "fixed"})
    assert resp.status_code == 200
    assert Decimal(resp.json()["amount"]) == Decimal("80")
    assert resp.json()["notes"] == "fixed"

    listed = client.get("/transactions/", params={"type": "Paid"}).json()
    assert listed["total"] == 1


def test_signed_url_round_trip(client):
    company = _company(client)
    order = _order(client, company["id"])
    path = _upload_receipt(client, order["id"], b"pdf-data")["receipt_path"]

    url = client.get("/files/signed-url", params={"path": path, "ttl": 60}).json()["url"]
    token = url.split("token=", 1)[1]

    resp = client.get("/files/download", params={"token": token})
    assert resp.status_code == 200
    assert resp.content == b"pdf-data"

    bad = client.get("/files/download", params={"token": token + "x"})
    assert bad.status_code == 422


def test_settings_writes_are_admin_only(client):
    resp = client.put("/settings", json={"high_risk_threshold": "500"})
    assert resp.status_code == 403

    resp = client.put("/settings", json={"high_risk_threshold": "500"}, headers=ADMIN)
    assert resp.status_code == 200
    assert Decimal(resp.json()["high_risk_threshold"]) == Decimal("500")
    assert client.get("/settings").json()["currency_code"] == "LYD"


def test_risk_report_uses_configured_threshold(client):
    client.put("/settings", json={"high_risk_threshold": "1000"}, headers=ADMIN)
    small = _company(client, name="Small")
    big = _company(client, name="Big")
    _order(client, small["id"], amount="500")
    _order(client, big["id"], amount="1500")

    report = client.get("/reports/risk").json()

    assert report["high_risk_count"] == 1
    assert [r["name"] for r in report["ranked"]] == ["Big", "Small"]
    assert report["ranked"][0]["is_high_risk"] is True


def test_zero_threshold_does_not_flag_companies_without_debt(client):
    client.put("/settings", json={"high_risk_threshold": "0"}, headers=ADMIN)
    idle = _company(client, name="Idle")
    credit = _company(client, name="In Credit")
    _transaction(client, credit["id"], "Received", "300")
    owing = _company(client, name="Owing")
    _order(client, owing["id"], amount="50")

    flags = {c["name"]: c["is_high_risk"] for c in client.get("/companies/").json()["items"]}

    assert flags == {"Idle": False, "In Credit": False, "Owing": True}
    assert client.get(f"/companies/{idle['id']}").json()["is_high_risk"] is False
    assert client.get("/reports/risk").json()["high_risk_count"] == 1


def test_summary(client):
    company = _company(client)
    _order(client, company["id"], amount="1000")
    _transaction(client, company["id"], "Received", "400")
    _transaction(client, None, "Paid", "50")

    summary = client.get("/reports/summary").json()

    assert summary["company_count"] == 1
    assert Decimal(summary["total_issued"]) == Decimal("1000")
    assert Decimal(summary["total_received"]) == Decimal("400")
    assert Decimal(summary["total_paid"]) == Decimal("50")
    assert Decimal(summary["net_cash"]) == Decimal("350")
    assert Decimal(summary["outstanding"]) == Decimal("600")
    assert summary["high_risk_count"] == 0
    assert {t["name"] for t in summary["top_companies"]} == {"Anis Cards", "Independent"}
    assert len(summary["recent_transactions"]) == 2


def test_cash_flow_window(client):
    company = _company(client)
    client.post(
        "/transactions/",
        json={
            "company_id": company["id"],
            "type": "Received",
            "amount": "100",
            "created_at": "2025-11-02T10:00:00",
        },
    )

    resp = client.get("/reports/cash-flow", params={"days": 7, "as_of": "2025-11-05"})

    body = resp.json()
    assert len(body["points"]) == 7
    assert body["start"] == "2025-10-30"
    by_day = {p["day"]: Decimal(p["received"]) for p in body["points"]}
    assert by_day["2025-11-02"] == Decimal("100")
    assert by_day["2025-11-05"] == Decimal("0")


def test_csv_export(client):
    company = _company(client)
    _order(client, company["id"], amount="1000")

    resp = client.get("/exports/companies.csv")

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert 'filename="companies_' in resp.headers["content-disposition"]
    header, row = resp.text.strip().splitlines()
    assert header.startswith("id,name,email")
    assert "Anis Cards" in row
    assert row.endswith("1000.00,0,1000.00")


def test_activity_log_is_searchable(client):
    _company(client, name="Searchable Co")
    client.post("/companies/", json={"name": "Other"}, headers={"X-User-Email": "ops@turbo.ly"})

    page = client.get("/activity", params={"search": "ops@turbo"}).json()

    assert page["total"] == 1
    assert page["items"][0]["action"] == "company.create"
