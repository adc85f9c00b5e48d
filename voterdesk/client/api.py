"""
Async HTTP client for the VoterDesk API.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings


logger = logging.getLogger(__name__)


class ApiError(Exception):
    """The API answered with an error status"""

    def __init__(self, status_code: int, payload: Any):
        self.status_code = status_code
        self.payload = payload if isinstance(payload, dict) else {"detail": payload}
        super().__init__(self.message)

    @property
    def message(self) -> str:
        return self.payload.get("message") or str(self.payload.get("detail") or "Unknown error")

    @property
    def details(self) -> Dict[str, Any]:
        return self.payload.get("details") or {}

    @property
    def kind(self) -> Optional[str]:
        """Store error kind (missing_table, missing_column, ...) when the store failed."""
        return self.details.get("kind")

    @property
    def remediation(self) -> Optional[str]:
        return self.details.get("remediation")

    @property
    def field_errors(self) -> Dict[str, str]:
        return self.details.get("errors") or {}

    @property
    def is_permission_error(self) -> bool:
        return self.status_code == 403


class NetworkError(Exception):
    """The API could not be reached"""


class ConsoleClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self._http = httpx.AsyncClient(base_url=base_url or settings.API_URL, transport=transport)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            response = await self._http.request(method, path, headers=headers, **kwargs)
        except httpx.TransportError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise NetworkError(str(e)) from e
        if response.status_code >= 400:
            try:
                payload = response.json()
            except ValueError:
                payload = response.text
            raise ApiError(response.status_code, payload)
        return response

    async def _json(self, method: str, path: str, **kwargs) -> Any:
        response = await self._request(method, path, **kwargs)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # ------------------------------ auth ------------------------------

    async def system_status(self) -> Dict[str, Any]:
        return await self._json("GET", "/auth/status")

    async def setup_admin(self, username: str, password: str, full_name: str) -> Dict[str, Any]:
        data = await self._json(
            "POST", "/auth/setup", json={"username": username, "password": password, "full_name": full_name}
        )
        self.token = data["access_token"]
        return data

    async def login(self, username: str, password: str) -> Dict[str, Any]:
        data = await self._json("POST", "/auth/login", json={"username": username, "password": password})
        self.token = data["access_token"]
        return data

    async def me(self) -> Dict[str, Any]:
        return await self._json("GET", "/auth/me")

    async def update_profile(self, full_name: str, password: str) -> Dict[str, Any]:
        return await self._json("PUT", "/auth/profile", json={"full_name": full_name, "password": password})

    # ------------------------------ voters ------------------------------

    async def list_voters(self, **filters) -> List[Dict[str, Any]]:
        params = {k: v for k, v in filters.items() if v is not None}
        return await self._json("GET", "/voters", params=params)

    async def create_voter(self, voter: Dict[str, Any]) -> Dict[str, Any]:
        return await self._json("POST", "/voters", json=voter)

    async def update_voter(self, voter_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        return await self._json("PUT", f"/voters/{voter_id}", json=changes)

    async def delete_voter(self, voter_id: str) -> None:
        await self._json("DELETE", f"/voters/{voter_id}")

    async def export_csv(self, **filters) -> str:
        params = {k: v for k, v in filters.items() if v is not None}
        response = await self._request("GET", "/voters/export.csv", params=params)
        return response.text

    async def stats(self) -> Dict[str, Any]:
        return await self._json("GET", "/stats")

    # ------------------------------ lists ------------------------------

    async def list_islands(self) -> List[str]:
        return await self._json("GET", "/islands")

    async def add_island(self, name: str) -> List[str]:
        return await self._json("POST", "/islands", json={"name": name})

    async def delete_island(self, name: str) -> List[str]:
        return await self._json("DELETE", f"/islands/{name}")

    async def list_parties(self) -> List[str]:
        return await self._json("GET", "/parties")

    async def add_party(self, name: str) -> List[str]:
        return await self._json("POST", "/parties", json={"name": name})

    async def delete_party(self, name: str) -> List[str]:
        return await self._json("DELETE", f"/parties/{name}")

    # ----------------------------- settings -----------------------------

    async def election_settings(self) -> Dict[str, Any]:
        return await self._json("GET", "/settings/election")

    async def update_election_settings(self, start_ms: int, end_ms: int) -> Dict[str, Any]:
        return await self._json(
            "PUT", "/settings/election", json={"election_start": start_ms, "election_end": end_ms}
        )

    async def countdown(self) -> Dict[str, Any]:
        return await self._json("GET", "/settings/countdown")

    # ------------------------------ tasks ------------------------------

    async def list_tasks(self) -> List[Dict[str, Any]]:
        return await self._json("GET", "/tasks")

    async def create_task(self, title: str, assigned_to_user_id: str, description: str = "") -> Dict[str, Any]:
        return await self._json(
            "POST",
            "/tasks",
            json={"title": title, "description": description, "assigned_to_user_id": assigned_to_user_id},
        )

    async def set_task_status(self, task_id: str, status: str) -> Dict[str, Any]:
        return await self._json("PATCH", f"/tasks/{task_id}/status", json={"status": status})

    async def delete_task(self, task_id: str) -> None:
        await self._json("DELETE", f"/tasks/{task_id}")

    # ------------------------------ chat ------------------------------

    async def list_messages(self) -> List[Dict[str, Any]]:
        return await self._json("GET", "/messages")

    async def send_message(self, content: str) -> Dict[str, Any]:
        return await self._json("POST", "/messages", json={"content": content})

    async def delete_message(self, message_id: str) -> None:
        await self._json("DELETE", f"/messages/{message_id}")
