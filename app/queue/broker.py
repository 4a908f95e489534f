import asyncio
import json
import logging
from typing import Dict, Optional

import aio_pika
from aio_pika import DeliveryMode, Message
from aio_pika.abc import AbstractChannel, AbstractRobustConnection

from app.constants.queues import ALL_QUEUES, MESSAGE_TTL_MS
from app.utils.exceptions import QueueUnavailableError

logger = logging.getLogger(__name__)


class QueueBroker:
    """
    RabbitMQ connection shared by the API (publishing) and the worker pool
    (consuming).

    Request handlers are synchronous and run in a thread pool, so
    ``publish_job`` hands the coroutine to the loop the broker connected on
    and waits a bounded time for the result.
    """

    def __init__(self, url: str, enabled: bool = True, publish_timeout: float = 5.0):
        self.url = url
        self.enabled = enabled
        self.publish_timeout = publish_timeout

        self._connection: Optional[AbstractRobustConnection] = None
        self._channel: Optional[AbstractChannel] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def connected(self) -> bool:
        return (
            self._connection is not None
            and not self._connection.is_closed
            and self._channel is not None
            and not self._channel.is_closed
        )

    async def connect(self) -> bool:
        if not self.enabled:
            logger.info("Queue disabled, background jobs will be dropped")
            return False

        try:
            self._connection = await aio_pika.connect_robust(self.url)
            self._channel = await self._connection.channel()
            await self.declare_queues(self._channel)
        except Exception as e:
            # the API keeps serving without the broker
            logger.error("Failed to connect to RabbitMQ: %s", e)
            await self.close()
            return False

        self._loop = asyncio.get_running_loop()
        logger.info("RabbitMQ connected successfully")
        return True

    async def declare_queues(self, channel: AbstractChannel):
        for name in ALL_QUEUES:
            await channel.declare_queue(
                name,
                durable=True,
                arguments={"x-message-ttl": MESSAGE_TTL_MS},
            )
        logger.info("All queues declared: %s", ", ".join(ALL_QUEUES))

    async def consumer_channel(self, prefetch_count: int) -> AbstractChannel:
        """A fresh channel limited to ``prefetch_count`` unacked deliveries."""
        if not self.connected:
            raise QueueUnavailableError("RabbitMQ not connected")
        channel = await self._connection.channel()
        await channel.set_qos(prefetch_count=prefetch_count)
        return channel

    async def publish(self, queue_name: str, job: dict):
        if not self.connected:
            raise QueueUnavailableError("RabbitMQ not connected")

        message = Message(
            body=json.dumps(job).encode(),
            content_type="application/json",
            delivery_mode=DeliveryMode.PERSISTENT,
        )
        await self._channel.default_exchange.publish(message, routing_key=queue_name)

    def publish_job(self, queue_name: str, job: dict) -> bool:
        """
        Publish from synchronous code. Returns False, after logging, when the
        broker is unavailable or the publish fails; jobs are not buffered.
        """
        if not self.connected or self._loop is None:
            logger.warning("Queue unavailable, dropping %s job: %s", queue_name, job)
            return False

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self._loop:
            # already on the broker loop, cannot block on it
            task = self._loop.create_task(self.publish(queue_name, job))
            task.add_done_callback(lambda t: self._log_task_error(t, queue_name))
            return True

        future = asyncio.run_coroutine_threadsafe(self.publish(queue_name, job), self._loop)
        try:
            future.result(timeout=self.publish_timeout)
        except Exception as e:
            future.cancel()
            logger.error("Failed to publish %s job: %s", queue_name, e)
            return False

        logger.info("Published %s job: %s", queue_name, job)
        return True

    @staticmethod
    def _log_task_error(task: asyncio.Task, queue_name: str):
        if not task.cancelled() and task.exception() is not None:
            logger.error("Failed to publish %s job: %s", queue_name, task.exception())

    async def queue_stats(self) -> Dict[str, dict]:
        if not self.connected:
            raise QueueUnavailableError("RabbitMQ not connected")

        stats = {}
        channel = await self._connection.channel()
        try:
            for name in ALL_QUEUES:
                queue = await channel.declare_queue(name, passive=True)
                result = queue.declaration_result
                stats[name] = {
                    "messages": result.message_count,
                    "consumers": result.consumer_count,
                }
        finally:
            await channel.close()
        return stats

    async def close(self):
        try:
            if self._channel is not None and not self._channel.is_closed:
                await self._channel.close()
            if self._connection is not None and not self._connection.is_closed:
                await self._connection.close()
        except Exception as e:
            logger.warning("Error closing RabbitMQ connection: %s", e)
        finally:
            self._channel = None
            self._connection = None
            self._loop = None
        logger.info("RabbitMQ connection closed")
