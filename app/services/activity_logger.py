import logging
import queue
import threading
import time
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder

from app.constants.statuses import ActivityAction, ActivityEntity
from app.models.activity import ActivityLog

logger = logging.getLogger(__name__)

_STOP = object()


def request_meta(request) -> dict:
    """ip address and user agent of an incoming request, for audit rows."""
    if request is None:
        return {}
    client = getattr(request, "client", None)
    return {
        "ip_address": client.host if client else None,
        "user_agent": request.headers.get("user-agent"),
    }


class ActivityLogger:
    """
    Append-only audit trail writer.

    Entries go onto a bounded queue drained by a small set of writer threads,
    each opening its own session. A full queue drops the entry with a warning;
    a failed insert is logged and never reaches the caller.
    """

    def __init__(self, session_factory, workers: int = 2, maxsize: int = 1000):
        self.session_factory = session_factory
        self.workers = max(1, workers)
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=maxsize)
        self._threads: list[threading.Thread] = []
        self._started = False
        self.dropped = 0
        self.failed = 0

    def start(self):
        if self._started:
            return
        for i in range(self.workers):
            t = threading.Thread(
                target=self._run,
                name=f"activity-log-{i + 1}",
                daemon=True,
            )
            t.start()
            self._threads.append(t)
        self._started = True
        logger.info("Activity logger started with %d writer(s)", self.workers)

    def _run(self):
        while True:
            entry = self._queue.get()
            try:
                if entry is _STOP:
                    return
                self._write(entry)
            finally:
                self._queue.task_done()

    def _write(self, entry: ActivityLog):
        try:
            with self.session_factory() as session:
                session.add(entry)
                session.commit()
        except Exception:
            self.failed += 1
            logger.exception(
                "Failed to write activity log %s %s#%s",
                entry.action, entry.entity_type, entry.entity_id,
            )

    def log(
        self,
        user_id: Optional[int],
        action: ActivityAction,
        entity_type: ActivityEntity,
        entity_id: int,
        entity_name: str,
        description: str,
        changes: Optional[dict] = None,
        meta: Optional[dict] = None,
    ) -> bool:
        meta = meta or {}
        entry = ActivityLog(
            user_id=user_id or 0,
            action=ActivityAction(action).value,
            entity_type=ActivityEntity(entity_type).value,
            entity_id=entity_id,
            entity_name=entity_name,
            description=description,
            changes=jsonable_encoder(changes) if changes is not None else None,
            ip_address=meta.get("ip_address"),
            user_agent=meta.get("user_agent"),
        )

        if not self._started:
            # no writer threads (tests, scripts): write inline
            self._write(entry)
            return True

        try:
            self._queue.put_nowait(entry)
            return True
        except queue.Full:
            self.dropped += 1
            logger.warning(
                "Activity log queue full, dropping %s %s#%s",
                entry.action, entry.entity_type, entry.entity_id,
            )
            return False

    def log_create(self, user_id, entity_type, entity_id, entity_name, entity, meta=None):
        entity_type = ActivityEntity(entity_type)
        return self.log(
            user_id,
            ActivityAction.create,
            entity_type,
            entity_id,
            entity_name,
            f"Created {entity_type.value}: {entity_name}",
            {"action": "create", "entity": entity},
            meta,
        )

    def log_update(self, user_id, entity_type, entity_id, entity_name, old_values, new_values, meta=None):
        entity_type = ActivityEntity(entity_type)
        return self.log(
            user_id,
            ActivityAction.update,
            entity_type,
            entity_id,
            entity_name,
            f"Updated {entity_type.value}: {entity_name}",
            {"action": "update", "old_values": old_values, "new_values": new_values},
            meta,
        )

    def log_delete(self, user_id, entity_type, entity_id, entity_name, entity, meta=None):
        entity_type = ActivityEntity(entity_type)
        return self.log(
            user_id,
            ActivityAction.delete,
            entity_type,
            entity_id,
            entity_name,
            f"Deleted {entity_type.value}: {entity_name}",
            {"action": "delete", "entity": entity},
            meta,
        )

    def flush(self, timeout: float = 5.0) -> bool:
        """Wait until queued entries are written. False on timeout."""
        deadline = time.monotonic() + timeout
        while self._queue.unfinished_tasks:
            if time.monotonic() >= deadline:
                return False
            time.sleep(0.01)
        return True

    def close(self, timeout: float = 5.0):
        if not self._started:
            return
        if not self.flush(timeout):
            logger.warning("Activity logger did not drain within %.1fs", timeout)
        for _ in self._threads:
            try:
                self._queue.put(_STOP, timeout=timeout)
            except queue.Full:
                break
        for t in self._threads:
            t.join(timeout=timeout)
        self._threads.clear()
        self._started = False
        logger.info("Activity logger stopped (dropped=%d failed=%d)", self.dropped, self.failed)
