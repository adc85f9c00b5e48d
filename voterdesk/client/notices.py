import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..config import settings


@dataclass
class Notice:
    message: str
    level: str  # success | error
    expires_at: float


class NoticeBoard:
    """Transient success/failure notices that expire after a fixed delay."""

    def __init__(self, ttl: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.ttl = settings.NOTICE_TTL if ttl is None else ttl
        self._clock = clock
        self._notices: List[Notice] = []

    def push(self, message: str, level: str = "success") -> Notice:
        notice = Notice(message=message, level=level, expires_at=self._clock() + self.ttl)
        self._notices.append(notice)
        return notice

    def error(self, message: str) -> Notice:
        return self.push(message, "error")

    def active(self) -> List[Notice]:
        now = self._clock()
        self._notices = [n for n in self._notices if n.expires_at > now]
        return list(self._notices)
