from fastapi import APIRouter, Depends

from app.dependencies.services import get_broker
from app.models.user import User
from app.utils.exceptions import QueueUnavailableError
from app.utils.responses import success_response
from app.utils.token import get_current_user

router = APIRouter()


@router.get("/monitoring/queues")
async def get_queue_stats(
    broker=Depends(get_broker),
    _: User = Depends(get_current_user),
):
    stats = await broker.queue_stats()
    return success_response(
        "Queue statistics retrieved successfully",
        {
            "queues": {
                name: {
                    "messages": s["messages"],
                    "messages_ready": s["messages"],
                    "consumers": s["consumers"],
                }
                for name, s in stats.items()
            },
            "total_queues": len(stats),
        },
    )


@router.get("/monitoring/queues/health")
async def get_queue_health(
    broker=Depends(get_broker),
    _: User = Depends(get_current_user),
):
    if not broker.connected:
        raise QueueUnavailableError(
            "RabbitMQ connection is not available",
            details="RabbitMQ connection is closed or not initialized",
        )

    stats = await broker.queue_stats()
    return success_response(
        "RabbitMQ is healthy",
        {
            "status": "healthy",
            "connected": True,
            "total_messages": sum(s["messages"] for s in stats.values()),
            "queues": {name: s["messages"] for name, s in stats.items()},
        },
    )
