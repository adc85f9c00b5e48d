import logging
from typing import Optional

import httpx

from ..config import settings
from .api import ApiError, ConsoleClient
from .chat_feed import ChatFeed
from .notices import NoticeBoard
from .session import SESSION_KEY, ConsoleSession, LocalStore


logger = logging.getLogger(__name__)


class ConsoleApp:
    """
    Top-level controller of a console instance. Owns the API client, the
    signed-in session and the chat feed; start() restores a saved session
    and close() tears everything down.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        session_file: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client = ConsoleClient(base_url=base_url, transport=transport)
        self.store = LocalStore(session_file or settings.SESSION_FILE)
        self.notices = NoticeBoard()
        self.session: Optional[ConsoleSession] = None
        self.chat: Optional[ChatFeed] = None

    async def start(self) -> Optional[ConsoleSession]:
        saved = self.store.get(SESSION_KEY)
        if not saved:
            return None
        try:
            session = ConsoleSession.from_dict(saved)
        except (KeyError, TypeError):
            self.store.remove(SESSION_KEY)
            return None

        self.client.token = session.token
        try:
            me = await self.client.me()
        except ApiError as e:
            if e.status_code == 401:
                logger.info("Saved session expired, signing out")
                self._forget()
                return None
            raise
        session.user = me["user"]
        session.capabilities = me["capabilities"]
        self._remember(session)
        return session

    async def login(self, username: str, password: str) -> ConsoleSession:
        data = await self.client.login(username, password)
        me = await self.client.me()
        session = ConsoleSession(token=data["access_token"], user=me["user"], capabilities=me["capabilities"])
        self._remember(session)
        return session

    async def setup_admin(self, username: str, password: str, full_name: str) -> ConsoleSession:
        data = await self.client.setup_admin(username, password, full_name)
        me = await self.client.me()
        session = ConsoleSession(token=data["access_token"], user=me["user"], capabilities=me["capabilities"])
        self._remember(session)
        return session

    async def update_profile(self, full_name: str, password: str) -> None:
        user = await self.client.update_profile(full_name, password)
        if self.session is not None:
            self.session.user = user
            self._remember(self.session)
        self.notices.push("Profile updated successfully!")

    async def open_chat(self) -> ChatFeed:
        if self.session is None:
            raise RuntimeError("Sign in before opening the chat")
        if self.chat is None:
            self.chat = ChatFeed(self.client, self.notices)
        self.chat.start()
        return self.chat

    async def logout(self) -> None:
        if self.chat is not None:
            await self.chat.stop()
            self.chat = None
        self._forget()

    async def close(self) -> None:
        if self.chat is not None:
            await self.chat.stop()
            self.chat = None
        await self.client.aclose()

    def _remember(self, session: ConsoleSession) -> None:
        self.session = session
        self.client.token = session.token
        self.store.set(SESSION_KEY, session.to_dict())

    def _forget(self) -> None:
        self.session = None
        self.client.token = None
        self.store.remove(SESSION_KEY)
