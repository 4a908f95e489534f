from enum import Enum


class UserRole(str, Enum):
    customer = "customer"
    admin = "admin"


class PurchaseStatus(str, Enum):
    pending = "pending"
    completed = "completed"
    cancelled = "cancelled"


class PaymentStatus(str, Enum):
    pending = "pending"
    paid = "paid"
    expired = "expired"
    failed = "failed"


class PaymentMethod(str, Enum):
    virtual_account = "virtual_account"
    qris = "qris"


class ActivityAction(str, Enum):
    create = "create"
    update = "update"
    delete = "delete"


class ActivityEntity(str, Enum):
    user = "user"
    visa = "visa"
    purchase = "purchase"
    payment = "payment"


# Purchases only move forward; completed and cancelled are terminal.
ALLOWED_PURCHASE_TRANSITIONS = {
    PurchaseStatus.pending.value: [PurchaseStatus.completed.value, PurchaseStatus.cancelled.value],
    PurchaseStatus.completed.value: [],
    PurchaseStatus.cancelled.value: [],
}

TERMINAL_PAYMENT_STATUSES = {
    PaymentStatus.paid.value,
    PaymentStatus.expired.value,
    PaymentStatus.failed.value,
}
