import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


logger = logging.getLogger(__name__)

SESSION_KEY = "vf_current_user_session"


class LocalStore:
    """Small JSON key-value file standing in for browser local storage."""

    def __init__(self, path: str):
        self.path = path

    def _read(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, e)
            return {}

    def _write(self, data: Dict[str, Any]) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f)

    def get(self, key: str) -> Optional[Any]:
        return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)


@dataclass
class ConsoleSession:
    """The signed-in user as seen by the console."""
    token: str
    user: Dict[str, Any]
    capabilities: Dict[str, bool] = field(default_factory=dict)

    @property
    def user_id(self) -> str:
        return self.user["id"]

    @property
    def role(self) -> str:
        return self.user["role"]

    def to_dict(self) -> Dict[str, Any]:
        return {"token": self.token, "user": self.user, "capabilities": self.capabilities}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConsoleSession":
        return cls(token=data["token"], user=data["user"], capabilities=data.get("capabilities") or {})
