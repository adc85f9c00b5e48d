"""
Community chat as seen by one console: periodic refresh plus optimistic deletes.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from ..config import settings
from .api import ApiError, ConsoleClient, NetworkError
from .notices import NoticeBoard


logger = logging.getLogger(__name__)


class ChatFeed:
    def __init__(
        self,
        client: ConsoleClient,
        notices: Optional[NoticeBoard] = None,
        interval: Optional[float] = None,
    ):
        self.client = client
        self.notices = notices or NoticeBoard()
        self.interval = settings.CHAT_POLL_INTERVAL if interval is None else interval
        self.messages: List[Dict[str, Any]] = []
        self.unavailable: Optional[ApiError] = None
        self.permission_error = False
        self._fetching = False
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def refresh(self) -> bool:
        """
        Replace the local list with the server's. Returns False when the tick
        was skipped because the previous fetch has not finished yet.
        """
        if self._fetching:
            return False
        self._fetching = True
        try:
            self.messages = await self.client.list_messages()
            self.unavailable = None
        except ApiError as e:
            if e.kind == "missing_table":
                logger.error("Chat store unavailable: %s", e.message)
                self.unavailable = e
            else:
                logger.warning("Failed to fetch messages: %s", e.message)
        except NetworkError as e:
            logger.warning("Failed to fetch messages: %s", e)
        finally:
            self._fetching = False
        return True

    async def _poll(self) -> None:
        while True:
            # con la tabla ausente no se sondea: retry() lo reanuda
            if self.unavailable is None:
                try:
                    await self.refresh()
                except Exception:
                    logger.exception("Chat refresh failed, polling continues")
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._poll())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def retry(self) -> bool:
        self.unavailable = None
        return await self.refresh()

    async def send(self, content: str) -> bool:
        content = content.strip()
        if not content:
            return False
        try:
            await self.client.send_message(content)
        except ApiError as e:
            if e.kind == "missing_table":
                self.unavailable = e
            self.notices.error("Could not send message: " + e.message)
            return False
        except NetworkError:
            self.notices.error("Could not send message: server unreachable")
            return False
        await self.refresh()
        return True

    async def delete(self, message_id: str) -> bool:
        """Remove the message locally, then on the server; restore the list if the server refuses."""
        previous = list(self.messages)
        self.messages = [m for m in self.messages if m["id"] != message_id]
        try:
            await self.client.delete_message(message_id)
        except ApiError as e:
            self.messages = previous
            if e.is_permission_error or e.kind == "permission_denied":
                self.permission_error = True
                self.notices.error("Delete failed: you can only delete your own messages")
            else:
                self.notices.error("Could not delete message. Server error: " + e.message)
            return False
        except NetworkError as e:
            self.messages = previous
            self.notices.error(f"Could not delete message. Server error: {e}")
            return False
        return True
