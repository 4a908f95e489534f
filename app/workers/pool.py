import asyncio
import logging
from typing import Callable, Dict, List

from app.constants.queues import (
    MESSAGE_TTL_MS,
    QUEUE_EMAIL_INVOICE,
    QUEUE_EMAIL_PAYMENT_SUCCESS,
)
from app.workers.email_worker import EmailJobHandler, process_message

logger = logging.getLogger(__name__)


class WorkerPool:
    """
    N consumers per queue. Each queue gets one channel with prefetch N; a
    feeder task drains the channel's iterator into a local queue that N worker
    tasks pull from, so at most N jobs per queue are unacked at a time.
    """

    def __init__(self, broker, handler: EmailJobHandler, concurrency: int = 10):
        self.broker = broker
        self.handler = handler
        self.concurrency = concurrency if concurrency > 0 else 10
        self._tasks: List[asyncio.Task] = []
        self._channels = []

    @property
    def routes(self) -> Dict[str, Callable]:
        return {
            QUEUE_EMAIL_INVOICE: self.handler.send_invoice,
            QUEUE_EMAIL_PAYMENT_SUCCESS: self.handler.send_payment_success,
        }

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    async def start(self) -> bool:
        if not self.broker.connected:
            logger.warning("Queue not connected, email workers not started")
            return False

        logger.info("[email-worker] Starting with %d parallel workers", self.concurrency)

        for queue_name, handle in self.routes.items():
            channel = await self.broker.consumer_channel(self.concurrency)
            self._channels.append(channel)
            queue = await channel.declare_queue(
                queue_name,
                durable=True,
                arguments={"x-message-ttl": MESSAGE_TTL_MS},
            )

            buffer: asyncio.Queue = asyncio.Queue(maxsize=self.concurrency)
            self._tasks.append(
                asyncio.create_task(self._feed(queue, buffer), name=f"feed-{queue_name}")
            )
            for i in range(self.concurrency):
                worker_name = f"email-worker-{queue_name}-{i + 1}"
                self._tasks.append(
                    asyncio.create_task(self._work(worker_name, buffer, handle), name=worker_name)
                )

        logger.info("[email-worker] All workers started")
        return True

    async def _feed(self, queue, buffer: asyncio.Queue):
        async with queue.iterator() as messages:
            async for message in messages:
                await buffer.put(message)

    async def _work(self, worker_name: str, buffer: asyncio.Queue, handle: Callable):
        while True:
            message = await buffer.get()
            try:
                await process_message(message, handle, worker_name)
            except asyncio.CancelledError:
                raise
            except Exception:
                # a failed ack/reject must not kill the worker
                logger.exception("[%s] Unexpected error handling message", worker_name)
            finally:
                buffer.task_done()

    async def stop(self):
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

        for channel in self._channels:
            try:
                if not channel.is_closed:
                    await channel.close()
            except Exception as e:
                logger.warning("Error closing worker channel: %s", e)
        self._channels.clear()
        logger.info("[email-worker] Stopped")
