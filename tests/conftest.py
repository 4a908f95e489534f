"""
Shared fixtures.

The app runs against an in-memory SQLite database; the broker, Xendit
client, cache and storage are replaced through ``dependency_overrides``.
The lifespan is never entered, so no RabbitMQ/Redis connection is attempted.
"""
import fnmatch
import os
import tempfile

os.environ.setdefault("ENV", "test")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["QUEUE_ENABLED"] = "false"
os.environ["CACHE_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="visa-desk-uploads-")

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from app.constants.statuses import PaymentStatus, PurchaseStatus, UserRole
from app.database import SessionFactory, create_db_and_tables, engine, get_session
from app.dependencies import services
from app.main import create_app
from app.models.payment import Payment
from app.models.purchase import Purchase
from app.models.user import User
from app.models.visa import Visa, VisaOption
from app.services.activity_logger import ActivityLogger
from app.services.storage import LocalStorage
from app.utils.exceptions import GatewayError
from app.utils.hash import hash_password
from app.utils.token import create_access_token


class FakePublisher:
    def __init__(self, connected=True):
        self.connected = connected
        self.jobs = []

    def publish_job(self, queue_name, job):
        if not self.connected:
            return False
        self.jobs.append((queue_name, job))
        return True

    def jobs_for(self, queue_name):
        return [job for name, job in self.jobs if name == queue_name]

    async def queue_stats(self):
        return {
            "email_invoice": {"messages": 2, "consumers": 10},
            "email_payment_success": {"messages": 1, "consumers": 10},
            "generate_pdf": {"messages": 0, "consumers": 0},
        }


class FakeGateway:
    def __init__(self):
        self.created = []
        self.statuses = {}
        self.fail = False
        self._seq = 0

    def create_invoice(self, **kwargs):
        if self.fail:
            raise GatewayError("Failed to connect to payment gateway")
        self._seq += 1
        self.created.append(kwargs)
        invoice_id = f"inv_test_{self._seq}"
        return {
            "id": invoice_id,
            "external_id": kwargs["external_id"],
            "status": "PENDING",
            "amount": kwargs["amount"],
            "invoice_url": f"https://checkout.xendit.co/web/{invoice_id}",
        }

    def get_invoice(self, invoice_id):
        if self.fail:
            raise GatewayError("Failed to connect to payment gateway")
        return {"id": invoice_id, "status": self.statuses.get(invoice_id, "PENDING")}


class FakeCache:
    def __init__(self):
        self.data = {}
        self.available = True

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value, ttl=None):
        self.data[key] = value

    def delete(self, key):
        self.data.pop(key, None)

    def delete_pattern(self, pattern):
        keys = [k for k in self.data if fnmatch.fnmatch(k, pattern)]
        for k in keys:
            del self.data[k]
        return len(keys)


@pytest.fixture(autouse=True)
def db():
    create_db_and_tables(engine)
    yield
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session():
    with Session(engine) as s:
        yield s


@pytest.fixture
def publisher():
    return FakePublisher()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def cache():
    return FakeCache()


@pytest.fixture
def activity_logger():
    return ActivityLogger(SessionFactory(engine))


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(str(tmp_path))


@pytest.fixture
def app(publisher, gateway, cache, activity_logger, storage):
    app = create_app()

    def _session():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[services.get_publisher] = lambda: publisher
    app.dependency_overrides[services.get_broker] = lambda: publisher
    app.dependency_overrides[services.get_gateway] = lambda: gateway
    app.dependency_overrides[services.get_cache] = lambda: cache
    app.dependency_overrides[services.get_activity_logger] = lambda: activity_logger
    app.dependency_overrides[services.get_storage] = lambda: storage
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)


def _make_user(session, email="customer@example.com", role=UserRole.customer.value, password="secret123", **kw):
    user = User(email=email, password=hash_password(password), name=kw.pop("name", "Test User"), role=role, **kw)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def _auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token({'user_id': user.id})}"}


@pytest.fixture
def make_user(session):
    return lambda **kw: _make_user(session, **kw)


@pytest.fixture
def auth_headers():
    return _auth_headers


@pytest.fixture
def customer(session):
    return _make_user(session)


@pytest.fixture
def admin(session):
    return _make_user(session, email="admin@example.com", role=UserRole.admin.value, name="Admin")


@pytest.fixture
def visa(session):
    visa = Visa(country="Japan", type="Tourist", description="30 day tourist visa", price=500000, duration=30)
    session.add(visa)
    session.commit()
    session.refresh(visa)
    return visa


@pytest.fixture
def visa_option(session, visa):
    option = VisaOption(visa_id=visa.id, name="Express", description="3 day processing", price=150000)
    session.add(option)
    session.commit()
    session.refresh(option)
    return option


@pytest.fixture
def purchase(session, customer, visa, visa_option):
    """Purchase 42: visa 500000 plus the express option 150000."""
    purchase = Purchase(
        id=42,
        user_id=customer.id,
        visa_id=visa.id,
        visa_option_id=visa_option.id,
        total_price=650000,
        status=PurchaseStatus.pending.value,
    )
    session.add(purchase)
    session.commit()
    session.refresh(purchase)
    return purchase


@pytest.fixture
def payment(session, customer, purchase):
    payment = Payment(
        id=7,
        user_id=customer.id,
        purchase_id=purchase.id,
        payment_method="virtual_account",
        amount=650000,
        status=PaymentStatus.pending.value,
        xendit_id="inv_abc",
        external_id="payment_42_1700000000",
        payment_url="https://checkout.xendit.co/web/inv_abc",
    )
    session.add(payment)
    session.commit()
    session.refresh(payment)
    return payment
