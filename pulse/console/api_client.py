from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from pulse.core.config import PULSE_API_BASE_URL, PULSE_HTTP_TIMEOUT_SECONDS
from pulse.console.errors import StaffNotFound, TenantNotFound, TransportError

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {
    "tenant_not_found": TenantNotFound,
    "staff_not_found": StaffNotFound,
}


def _error_detail(response: httpx.Response) -> Any:
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        return data.get("detail")
    return None


class PulseApiClient:
    """Thin async wrapper over the Pulse HTTP API.

    Every call either returns the decoded JSON body or raises a console error:
    structured 404s become ``TenantNotFound``/``StaffNotFound``, anything else
    that is not a 2xx becomes ``TransportError``.
    """

    def __init__(
        self,
        base_url: str = PULSE_API_BASE_URL,
        *,
        timeout: float = PULSE_HTTP_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)
        self.access_token: Optional[str] = None

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "PulseApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _headers(self) -> Dict[str, str]:
        if not self.access_token:
            return {}
        return {"Authorization": f"Bearer {self.access_token}"}

    async def _request(self, method: str, path: str, *, json: Optional[dict] = None) -> Any:
        try:
            response = await self._client.request(method, path, json=json, headers=self._headers())
        except httpx.HTTPError as exc:
            logger.warning("Request failed method=%s path=%s error=%s", method, path, exc.__class__.__name__)
            raise TransportError() from exc

        if 200 <= response.status_code < 300:
            try:
                return response.json()
            except ValueError as exc:
                raise TransportError(status_code=response.status_code) from exc

        detail = _error_detail(response)
        if response.status_code == 404 and isinstance(detail, dict):
            error_cls = _NOT_FOUND_CODES.get(detail.get("code"))
            if error_cls is not None:
                raise error_cls(detail.get("message"))

        logger.info("Request rejected method=%s path=%s status=%s", method, path, response.status_code)
        message = detail if isinstance(detail, str) else None
        raise TransportError(message, status_code=response.status_code)

    async def resolve_link(self, tenant_code: str, staff_code: Optional[str] = None) -> dict:
        path = f"/api/links/{tenant_code}"
        if staff_code is not None:
            path = f"{path}/{staff_code}"
        return await self._request("GET", path)

    async def verify_pin(self, *, pin: str, tenant_id: int, staff_id: Optional[int] = None) -> dict:
        payload: Dict[str, Any] = {"pin": pin, "tenant_id": tenant_id}
        if staff_id is not None:
            payload["staff_id"] = staff_id
        return await self._request("POST", "/api/pin/verify", json=payload)

    async def change_pin(self, *, old_pin: str, new_pin: str, user_id: Optional[int] = None) -> dict:
        payload: Dict[str, Any] = {"old_pin": old_pin, "new_pin": new_pin}
        if user_id is not None:
            payload["user_id"] = user_id
        return await self._request("POST", "/api/pin/change", json=payload)

    async def get_profile(self, account_id: Optional[int] = None) -> dict:
        target = "me" if account_id is None else str(account_id)
        return await self._request("GET", f"/api/profile/{target}")

    async def password_login(self, *, email: str, password: str) -> dict:
        return await self._request("POST", "/api/auth/login", json={"email": email, "password": password})

    async def refresh(self, refresh_token: str) -> dict:
        return await self._request("POST", "/api/auth/refresh", json={"refresh_token": refresh_token})

    async def logout(self) -> dict:
        return await self._request("POST", "/api/auth/logout")

    async def change_password(self, *, current_password: str, new_password: str) -> dict:
        return await self._request(
            "POST",
            "/api/auth/password/change",
            json={"current_password": current_password, "new_password": new_password},
        )
