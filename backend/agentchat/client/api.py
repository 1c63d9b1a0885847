"""
HTTP client for the AgentChat REST API.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Non-success response or transport failure."""

    def __init__(self, status_code: Optional[int], detail: str):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


class ApiClient:
    """Thin async wrapper; every method returns the decoded JSON body."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self._client = httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout, transport=transport
        )

    async def close(self):
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def login(self, email: str, password: str) -> str:
        data = await self._request(
            "POST", "/api/auth/token", data={"username": email, "password": password}
        )
        self.token = data["access_token"]
        return self.token

    async def list_conversations(self, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        return await self._request(
            "GET", "/api/chat/conversations", params={"page": page, "limit": limit}
        )

    async def get_conversation(self, conversation_id: str) -> Dict[str, Any]:
        data = await self._request("GET", f"/api/chat/conversations/{conversation_id}")
        return data["conversation"]

    async def create_conversation(self, title: str) -> Dict[str, Any]:
        data = await self._request("POST", "/api/chat/conversations", json={"title": title})
        return data["conversation"]

    async def send_message(
        self,
        conversation_id: str,
        message: str,
        attachments: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        data = await self._request(
            "POST",
            f"/api/chat/conversations/{conversation_id}/messages",
            json={"message": message, "attachments": attachments or []},
        )
        return data["conversation"]

    async def rename_conversation(self, conversation_id: str, title: str) -> Dict[str, Any]:
        data = await self._request(
            "PUT", f"/api/chat/conversations/{conversation_id}", json={"title": title}
        )
        return data["conversation"]

    async def delete_conversation(self, conversation_id: str) -> None:
        await self._request("DELETE", f"/api/chat/conversations/{conversation_id}")

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise ApiError(None, str(e)) from e

        if response.is_success:
            return response.json()

        try:
            detail = response.json().get("detail") or response.text
        except ValueError:
            detail = response.text
        if not isinstance(detail, str):
            # FastAPI request validation errors are a list of dicts
            detail = "; ".join(str(item.get("msg", item)) for item in detail)
        raise ApiError(response.status_code, detail)
