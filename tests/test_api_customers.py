from datetime import date
from decimal import Decimal


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_customer_crud(client):
    created = client.post(
        "/customers/",
        json={"name": "Doña Lupe", "phone": "555-0101", "email": "lupe@example.com"},
    )
    assert created.status_code == 201
    customer = created.json()
    assert Decimal(customer["balance"]) == Decimal("0")

    updated = client.put(
        f"/customers/{customer['id']}",
        json={"name": "Doña Lupe", "address": "Calle 5"},
    )
    assert updated.status_code == 200
    assert updated.json()["address"] == "Calle 5"
    assert updated.json()["phone"] is None

    names = [c["name"] for c in client.get("/customers/").json()]
    assert names == ["Doña Lupe"]

    assert client.delete(f"/customers/{customer['id']}").status_code == 204
    assert client.get(f"/customers/{customer['id']}").status_code == 404


def test_invalid_email_rejected(client):
    resp = client.post("/customers/", json={"name": "Ana", "email": "not-an-email"})
    assert resp.status_code == 422


def test_customer_with_open_credit_cannot_be_deleted(client, make_customer, make_note):
    customer_id = make_customer()
    make_note(customer_id, Decimal("10"))

    resp = client.delete(f"/customers/{customer_id}")
    assert resp.status_code == 409
    assert resp.json()["code"] == "customer_has_open_credit"


def test_customer_credits_listed_in_payment_order(client, make_customer, make_note):
    customer_id = make_customer()
    newer_open = make_note(customer_id, Decimal("10"), week_start=date(2024, 6, 15))
    older_open = make_note(customer_id, Decimal("10"), week_start=date(2024, 6, 8))
    overdue = make_note(customer_id, Decimal("10"), status="overdue", week_start=date(2024, 6, 1))
    make_note(customer_id, Decimal("10"), outstanding=Decimal("0"), status="closed")

    resp = client.get(f"/customers/{customer_id}/credits")
    assert resp.status_code == 200
    body = resp.json()
    assert [c["id"] for c in body] == [overdue, older_open, newer_open]
    assert body[0]["week_label"] == "01/06 - 07/06"


def test_payment_overdue_first(client, make_customer, make_note):
    customer_id = make_customer()
    overdue = make_note(customer_id, Decimal("50"), status="overdue", week_start=date(2024, 6, 8))
    open_note = make_note(customer_id, Decimal("30"), week_start=date(2024, 6, 15))

    resp = client.post(
        f"/customers/{customer_id}/payments",
        json={"amount": "60", "method": "cash", "credit_ids": [open_note, overdue]},
    )
    assert resp.status_code == 201
    body = resp.json()
    by_id = {c["id"]: c for c in body["credits"]}
    assert by_id[overdue]["status"] == "closed"
    assert Decimal(by_id[overdue]["outstanding_amount"]) == Decimal("0")
    assert by_id[open_note]["status"] == "open"
    assert Decimal(by_id[open_note]["outstanding_amount"]) == Decimal("20")
    assert Decimal(body["allocated"]) == Decimal("60")
    assert Decimal(body["balance"]) == Decimal("20")
    assert body["warnings"] == []

    customer = client.get(f"/customers/{customer_id}").json()
    assert Decimal(customer["balance"]) == Decimal("20")


def test_payment_surplus_rejected_by_default(client, make_customer, make_note):
    customer_id = make_customer()
    note_id = make_note(customer_id, Decimal("100"))

    resp = client.post(
        f"/customers/{customer_id}/payments",
        json={"amount": "150", "credit_ids": [note_id]},
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "payment_exceeds_outstanding"
    assert client.get("/payments/").json()["total"] == 0


def test_payment_surplus_left_unallocated_when_configured(
    client, use_settings, make_customer, make_note
):
    use_settings(surplus_policy="unallocated")
    customer_id = make_customer()
    note_id = make_note(customer_id, Decimal("100"))

    resp = client.post(
        f"/customers/{customer_id}/payments",
        json={"amount": "150", "credit_ids": [note_id]},
    )
    assert resp.status_code == 201
    body = resp.json()
    assert Decimal(body["allocated"]) == Decimal("100")
    assert Decimal(body["unallocated"]) == Decimal("50")
    assert body["credits"][0]["status"] == "closed"

    payment = client.get(f"/payments/{body['payment_id']}").json()
    assert [Decimal(a["amount"]) for a in payment["allocations"]] == [Decimal("100")]


def test_payment_validation_errors(client, make_customer, make_note):
    customer_id = make_customer()
    make_note(customer_id, Decimal("10"))

    assert client.post(f"/customers/{customer_id}/payments", json={"amount": "0"}).status_code == 422
    assert client.post(f"/customers/{customer_id}/payments", json={"amount": "-3"}).status_code == 422
    assert client.post(
        f"/customers/{customer_id}/payments", json={"amount": "5", "method": "cheque"}
    ).status_code == 422

    resp = client.post(f"/customers/{customer_id}/payments", json={"amount": "5", "credit_ids": [999]})
    assert resp.status_code == 400
    assert resp.json()["code"] == "ineligible_credit_note"


def test_payment_for_unknown_customer(client):
    resp = client.post("/customers/999/payments", json={"amount": "5"})
    assert resp.status_code == 404
