from sqlmodel import select

from app.constants.queues import QUEUE_EMAIL_PAYMENT_SUCCESS
from app.models.activity import ActivityLog
from app.models.payment import Payment
from app.models.purchase import Purchase


def test_create_payment_calls_gateway_and_stores_pending_payment(client, session, gateway, customer, purchase, auth_headers):
    response = client.post(
        "/api/v1/payments",
        json={"purchase_id": 42, "payment_method": "virtual_account", "bank_code": "BCA"},
        headers=auth_headers(customer),
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["xendit_id"] == "inv_test_1"
    assert data["payment_url"] == "https://checkout.xendit.co/web/inv_test_1"
    assert data["payment"]["status"] == "pending"
    assert data["payment"]["amount"] == 650000

    sent = gateway.created[0]
    assert sent["external_id"].startswith("payment_42_")
    assert sent["amount"] == 650000
    assert sent["payment_methods"] == ["BANK_TRANSFER", "BCA"]
    assert sent["customer_email"] == customer.email
    assert sent["item_name"] == "Japan - Tourist"

    payment = session.exec(select(Payment).where(Payment.xendit_id == "inv_test_1")).one()
    assert payment.purchase_id == 42
    assert payment.external_id == sent["external_id"]

    log = session.exec(select(ActivityLog).where(ActivityLog.entity_type == "payment")).one()
    assert log.action == "create"
    assert log.user_id == customer.id


def test_create_payment_uses_explicit_amount_and_qris(client, gateway, customer, purchase, auth_headers):
    response = client.post(
        "/api/v1/payments",
        json={"purchase_id": 42, "payment_method": "qris", "amount": 100000},
        headers=auth_headers(customer),
    )

    assert response.status_code == 200
    assert gateway.created[0]["amount"] == 100000
    assert gateway.created[0]["payment_methods"] == ["EWALLET"]


def test_create_payment_rejects_unknown_method(client, customer, purchase, auth_headers):
    response = client.post(
        "/api/v1/payments",
        json={"purchase_id": 42, "payment_method": "cash"},
        headers=auth_headers(customer),
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_create_payment_for_someone_elses_purchase_is_404(client, make_user, purchase, auth_headers):
    other = make_user(email="other@example.com")

    response = client.post(
        "/api/v1/payments",
        json={"purchase_id": 42, "payment_method": "qris"},
        headers=auth_headers(other),
    )

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "PURCHASE_NOT_FOUND"


def test_create_payment_gateway_failure_is_502(client, session, gateway, customer, purchase, auth_headers):
    gateway.fail = True

    response = client.post(
        "/api/v1/payments",
        json={"purchase_id": 42, "payment_method": "qris"},
        headers=auth_headers(customer),
    )

    assert response.status_code == 502
    assert response.json()["error"]["code"] == "PAYMENT_GATEWAY_ERROR"
    assert session.exec(select(Payment)).all() == []


def test_poll_applies_paid_status(client, session, gateway, publisher, customer, payment, auth_headers):
    gateway.statuses["inv_abc"] = "PAID"

    response = client.get("/api/v1/payments/7/status", headers=auth_headers(customer))

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "paid"

    session.expire_all()
    assert session.get(Purchase, 42).status == "completed"
    assert len(publisher.jobs_for(QUEUE_EMAIL_PAYMENT_SUCCESS)) == 1

    logs = session.exec(select(ActivityLog).where(ActivityLog.action == "update")).all()
    assert {log.user_id for log in logs} == {customer.id}


def test_poll_twice_enqueues_once(client, gateway, publisher, customer, payment, auth_headers):
    gateway.statuses["inv_abc"] = "PAID"

    client.get("/api/v1/payments/7/status", headers=auth_headers(customer))
    client.get("/api/v1/payments/7/status", headers=auth_headers(customer))

    assert len(publisher.jobs_for(QUEUE_EMAIL_PAYMENT_SUCCESS)) == 1


def test_poll_gateway_unreachable_is_502_and_leaves_payment(client, session, gateway, customer, payment, auth_headers):
    gateway.fail = True

    response = client.get("/api/v1/payments/7/status", headers=auth_headers(customer))

    assert response.status_code == 502
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "PAYMENT_GATEWAY_ERROR"

    session.expire_all()
    assert session.get(Payment, 7).status == "pending"


def test_poll_is_scoped_to_the_owner(client, make_user, payment, auth_headers):
    other = make_user(email="other@example.com")

    response = client.get("/api/v1/payments/7/status", headers=auth_headers(other))

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "PAYMENT_NOT_FOUND"


def test_poll_requires_authentication(client, payment):
    response = client.get("/api/v1/payments/7/status")

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "MISSING_AUTH_HEADER"
