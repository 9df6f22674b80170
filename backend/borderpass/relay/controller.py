import asyncio
import logging

logging.basicConfig(
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    level=logging.INFO,
)

logger = logging.getLogger("connection_controller")


class ConnectionController:
    """Owns the background tasks of one relay connection."""

    def __init__(self):
        self.stop_event = asyncio.Event()
        self.tasks: list[asyncio.Task] = []
        self.stop_reason = "other"

    def create_task(self, coro):
        task = asyncio.create_task(coro)
        self.tasks.append(task)
        return task

    def request_stop(self, reason: str) -> None:
        if not self.stop_event.is_set():
            self.stop_reason = str(reason or "other")
            self.stop_event.set()

    async def stop(self):
        if not self.stop_event.is_set():
            self.stop_event.set()

        for task in self.tasks:
            task.cancel()

        await asyncio.gather(*self.tasks, return_exceptions=True)
        if self.tasks:
            logger.debug("Stopped %s connection tasks", len(self.tasks))
