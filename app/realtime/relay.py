import asyncio
import logging

from app.realtime.broadcaster import Broadcaster
from app.realtime.change_stream import ChangeStream

logger = logging.getLogger(__name__)

TASK_UPDATED = "taskUpdated"


async def relay_changes(stream: ChangeStream, broadcaster: Broadcaster):
    """Forward every change notification to connected clients as taskUpdated."""
    async for change in stream.watch():
        await broadcaster.publish(
            TASK_UPDATED, {"type": change["operationType"], "data": change}
        )


def start_relay(stream: ChangeStream, broadcaster: Broadcaster) -> asyncio.Task:
    task = asyncio.create_task(relay_changes(stream, broadcaster), name="change-relay")
    task.add_done_callback(_log_relay_exit)
    return task


def _log_relay_exit(task: asyncio.Task):
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Change relay stopped", exc_info=exc)
