from types import SimpleNamespace
from unittest.mock import MagicMock

from sqlmodel import select

from app.constants.statuses import ActivityAction, ActivityEntity
from app.database import SessionFactory, engine
from app.models.activity import ActivityLog
from app.services.activity_logger import ActivityLogger, request_meta


def test_not_started_logger_writes_inline(activity_logger, session):
    ok = activity_logger.log_create(
        5, ActivityEntity.visa, 1, "Japan - Tourist", {"id": 1}, {"ip_address": "10.0.0.1"}
    )

    assert ok is True
    log = session.exec(select(ActivityLog)).one()
    assert log.action == "create"
    assert log.description == "Created visa: Japan - Tourist"
    assert log.ip_address == "10.0.0.1"


def test_system_actor_is_zero(activity_logger, session):
    activity_logger.log_update(None, ActivityEntity.payment, 7, "Payment #7", {"status": "pending"}, {"status": "paid"})

    log = session.exec(select(ActivityLog)).one()
    assert log.user_id == 0
    assert log.changes == {
        "action": "update",
        "old_values": {"status": "pending"},
        "new_values": {"status": "paid"},
    }


def test_started_logger_writes_in_background(session):
    activity_logger = ActivityLogger(SessionFactory(engine), workers=1)
    activity_logger.start()
    try:
        for i in range(5):
            activity_logger.log(1, ActivityAction.create, ActivityEntity.visa, i, f"Visa {i}", "created")
        assert activity_logger.flush(5.0) is True
    finally:
        activity_logger.close(5.0)

    assert len(session.exec(select(ActivityLog)).all()) == 5


def test_full_queue_drops_entry():
    logger = ActivityLogger(MagicMock(), maxsize=1)
    logger._started = True
    logger._queue.put_nowait("occupied")

    ok = logger.log(1, ActivityAction.create, ActivityEntity.visa, 1, "Visa", "created")

    assert ok is False
    assert logger.dropped == 1


def test_write_failure_never_reaches_caller():
    factory = MagicMock(side_effect=RuntimeError("db down"))
    logger = ActivityLogger(factory)

    assert logger.log(1, ActivityAction.create, ActivityEntity.visa, 1, "Visa", "created") is True
    assert logger.failed == 1


def test_request_meta():
    request = SimpleNamespace(client=SimpleNamespace(host="1.2.3.4"), headers={"user-agent": "pytest"})

    assert request_meta(request) == {"ip_address": "1.2.3.4", "user_agent": "pytest"}
    assert request_meta(None) == {}
