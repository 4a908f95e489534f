from sqlmodel import select

from app.constants.queues import QUEUE_EMAIL_INVOICE
from app.models.activity import ActivityLog
from app.models.purchase import Purchase
from app.models.visa import Visa, VisaOption


def test_purchase_with_option_totals_both_prices_and_enqueues_invoice(
    client, session, publisher, customer, visa, visa_option, auth_headers
):
    response = client.post(
        "/api/v1/purchases",
        json={"visa_id": visa.id, "visa_option_id": visa_option.id},
        headers=auth_headers(customer),
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["total_price"] == 650000
    assert data["status"] == "pending"
    assert data["visa"]["country"] == "Japan"
    assert data["visa_option"]["name"] == "Express"

    assert publisher.jobs_for(QUEUE_EMAIL_INVOICE) == [
        {"purchase_id": data["id"], "user_id": customer.id, "email": customer.email, "type": "invoice"}
    ]

    log = session.exec(select(ActivityLog).where(ActivityLog.entity_type == "purchase")).one()
    assert log.action == "create"
    assert log.entity_name == f"Purchase #{data['id']} - Japan - Tourist"


def test_purchase_without_option_uses_visa_price(client, customer, visa, auth_headers):
    response = client.post("/api/v1/purchases", json={"visa_id": visa.id}, headers=auth_headers(customer))

    assert response.status_code == 201
    assert response.json()["data"]["total_price"] == 500000
    assert response.json()["data"]["visa_option"] is None


def test_purchase_still_succeeds_when_queue_is_down(client, session, publisher, customer, visa, auth_headers):
    publisher.connected = False

    response = client.post("/api/v1/purchases", json={"visa_id": visa.id}, headers=auth_headers(customer))

    assert response.status_code == 201
    assert session.exec(select(Purchase)).one().status == "pending"


def test_option_from_another_visa_is_rejected(client, session, customer, visa, auth_headers):
    other = Visa(country="Korea", type="Business", price=800000, duration=90)
    session.add(other)
    session.commit()
    foreign_option = VisaOption(visa_id=other.id, name="Express", price=100000)
    session.add(foreign_option)
    session.commit()

    response = client.post(
        "/api/v1/purchases",
        json={"visa_id": visa.id, "visa_option_id": foreign_option.id},
        headers=auth_headers(customer),
    )

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "VISA_OPTION_NOT_FOUND"


def test_inactive_visa_cannot_be_purchased(client, session, customer, visa, auth_headers):
    visa.is_active = False
    session.add(visa)
    session.commit()

    response = client.post("/api/v1/purchases", json={"visa_id": visa.id}, headers=auth_headers(customer))

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "VISA_NOT_FOUND"


def test_list_purchases_is_paginated_and_scoped(client, session, customer, make_user, visa, auth_headers):
    other = make_user(email="other@example.com")
    for owner in (customer, customer, customer, other):
        session.add(Purchase(user_id=owner.id, visa_id=visa.id, total_price=visa.price))
    session.commit()

    response = client.get("/api/v1/purchases?page=1&per_page=2", headers=auth_headers(customer))

    assert response.status_code == 200
    body = response.json()
    assert len(body["data"]) == 2
    assert body["meta"] == {"page": 1, "per_page": 2, "total": 3, "total_pages": 2}
    assert all(p["user_id"] == customer.id for p in body["data"])


def test_get_purchase_of_other_user_is_404(client, make_user, purchase, auth_headers):
    other = make_user(email="other@example.com")

    response = client.get("/api/v1/purchases/42", headers=auth_headers(other))

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "PURCHASE_NOT_FOUND"


def test_status_moves_forward(client, session, customer, purchase, auth_headers):
    response = client.put(
        "/api/v1/purchases/42/status", json={"status": "cancelled"}, headers=auth_headers(customer)
    )

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "cancelled"

    log = session.exec(select(ActivityLog).where(ActivityLog.action == "update")).one()
    assert log.changes["old_values"] == {"status": "pending"}
    assert log.changes["new_values"] == {"status": "cancelled"}


def test_terminal_status_cannot_be_reopened(client, session, customer, purchase, auth_headers):
    purchase.status = "completed"
    session.add(purchase)
    session.commit()

    response = client.put(
        "/api/v1/purchases/42/status", json={"status": "pending"}, headers=auth_headers(customer)
    )

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "INVALID_STATUS_TRANSITION"


def test_same_status_is_a_no_op(client, session, customer, purchase, auth_headers):
    response = client.put(
        "/api/v1/purchases/42/status", json={"status": "pending"}, headers=auth_headers(customer)
    )

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "pending"
    assert session.exec(select(ActivityLog)).all() == []


def test_unknown_status_is_a_validation_error(client, customer, purchase, auth_headers):
    response = client.put(
        "/api/v1/purchases/42/status", json={"status": "refunded"}, headers=auth_headers(customer)
    )

    assert response.status_code == 400
