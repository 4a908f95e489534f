from datetime import datetime

from sqlmodel import select

from app.constants.queues import QUEUE_EMAIL_PAYMENT_SUCCESS
from app.models.activity import ActivityLog
from app.models.payment import Payment
from app.models.purchase import Purchase

WEBHOOK_URL = "/api/v1/webhooks/xendit"


def _paid(xendit_id="inv_abc", status="PAID"):
    return {
        "id": xendit_id,
        "external_id": "payment_42_1700000000",
        "status": status,
        "amount": 650000,
        "currency": "IDR",
    }


def test_paid_webhook_completes_purchase_and_enqueues_email(client, session, publisher, payment, customer):
    response = client.post(WEBHOOK_URL, json=_paid())

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"] == {"payment_id": 7, "status": "paid"}

    session.expire_all()
    assert session.get(Payment, 7).status == "paid"
    assert session.get(Purchase, 42).status == "completed"

    jobs = publisher.jobs_for(QUEUE_EMAIL_PAYMENT_SUCCESS)
    assert jobs == [
        {"purchase_id": 42, "user_id": customer.id, "email": customer.email, "type": "payment_success"}
    ]


def test_replayed_paid_webhook_is_a_no_op(client, session, publisher, payment):
    first = client.post(WEBHOOK_URL, json=_paid())
    second = client.post(WEBHOOK_URL, json=_paid(status="paid"))

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json()["data"]["status"] == "paid"

    assert len(publisher.jobs_for(QUEUE_EMAIL_PAYMENT_SUCCESS)) == 1

    session.expire_all()
    assert session.get(Purchase, 42).status == "completed"

    logs = session.exec(select(ActivityLog).where(ActivityLog.action == "update")).all()
    # one payment update and one purchase update, from the first delivery only
    assert sorted(log.entity_type for log in logs) == ["payment", "purchase"]
    assert all(log.user_id == 0 for log in logs)


def test_webhook_audit_entries_carry_old_and_new_status(client, session, payment):
    client.post(WEBHOOK_URL, json=_paid())

    log = session.exec(
        select(ActivityLog).where(ActivityLog.entity_type == "payment", ActivityLog.entity_id == 7)
    ).one()
    assert log.changes["old_values"] == {"status": "pending"}
    assert log.changes["new_values"] == {"status": "paid"}
    assert log.entity_name == "Payment #7 - virtual_account"


def test_unknown_gateway_id_returns_404_without_mutation(client, session, publisher, payment):
    response = client.post(WEBHOOK_URL, json=_paid(xendit_id="inv_unknown"))

    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "PAYMENT_NOT_FOUND"

    session.expire_all()
    assert session.get(Payment, 7).status == "pending"
    assert session.get(Purchase, 42).status == "pending"
    assert publisher.jobs == []
    assert session.exec(select(ActivityLog)).all() == []


def test_malformed_payload_is_a_validation_error(client, payment, publisher):
    response = client.post(WEBHOOK_URL, json={"status": "PAID"})

    assert response.status_code == 400
    body = response.json()
    assert body["error"]["code"] == "VALIDATION_ERROR"
    assert publisher.jobs == []


def test_non_json_body_is_a_validation_error(client, payment):
    response = client.post(
        WEBHOOK_URL,
        content=b"not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_expired_webhook_leaves_purchase_pending(client, session, publisher, payment):
    response = client.post(WEBHOOK_URL, json=_paid(status="EXPIRED"))

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "expired"

    session.expire_all()
    assert session.get(Purchase, 42).status == "pending"
    assert publisher.jobs == []


def test_terminal_payment_is_not_moved_again(client, session, publisher, payment):
    client.post(WEBHOOK_URL, json=_paid(status="EXPIRED"))
    response = client.post(WEBHOOK_URL, json=_paid(status="PAID"))

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "expired"
    assert publisher.jobs == []


def test_soft_deleted_payment_is_not_matched(client, session, payment):
    payment.deleted_at = datetime.utcnow()
    session.add(payment)
    session.commit()

    response = client.post(WEBHOOK_URL, json=_paid())
    assert response.status_code == 404


def test_paid_webhook_does_not_reopen_cancelled_purchase(client, session, publisher, payment, purchase):
    purchase.status = "cancelled"
    session.add(purchase)
    session.commit()

    response = client.post(WEBHOOK_URL, json=_paid())

    assert response.status_code == 200
    session.expire_all()
    assert session.get(Payment, 7).status == "paid"
    assert session.get(Purchase, 42).status == "cancelled"
    assert publisher.jobs_for(QUEUE_EMAIL_PAYMENT_SUCCESS) == []

    entities = [log.entity_type for log in session.exec(select(ActivityLog)).all()]
    assert entities == ["payment"]


def test_uppercase_terminal_status_is_not_moved(client, session, publisher, payment):
    payment.status = "FAILED"
    session.add(payment)
    session.commit()

    response = client.post(WEBHOOK_URL, json=_paid())

    assert response.status_code == 200
    session.expire_all()
    assert session.get(Payment, 7).status == "FAILED"
    assert session.get(Purchase, 42).status == "pending"
    assert publisher.jobs_for(QUEUE_EMAIL_PAYMENT_SUCCESS) == []
