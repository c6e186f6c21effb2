from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import ValidationError

from app.application.dto.backend import BackendModel
from app.application.exceptions import BackendRejectedError, NetworkUnavailableError

DTO = TypeVar("DTO", bound=BackendModel)


class BookingApiClient:
    """Thin JSON client for the salon booking site. Shared by the backend and payment adapters."""

    def __init__(self, base_url: str, timeout: float = 10.0, client: httpx.AsyncClient | None = None) -> None:
        self._client = client or httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout)
        self._logger = logging.getLogger(__name__)

    async def request(
        self,
        method: str,
        path: str,
        dto: type[DTO],
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        fallback_error: str = "Request failed",
    ) -> DTO:
        try:
            resp = await self._client.request(method, path, json=json, params=params)
        except httpx.TransportError as e:
            self._logger.error("Booking API unreachable", extra={"source": path, "error": str(e)})
            raise NetworkUnavailableError("The booking service is not reachable. Please try again.") from e

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if resp.status_code >= 400:
            message = body.get("error") or body.get("message") or fallback_error
            self._logger.warning(
                "Booking API refused request",
                extra={"source": path, "error": message, "reason": resp.status_code},
            )
            raise BackendRejectedError(str(message), status_code=resp.status_code)

        try:
            return dto.model_validate(body)
        except ValidationError as e:
            self._logger.error("Unexpected booking API response", extra={"source": path, "error": str(e)})
            raise BackendRejectedError(fallback_error, status_code=resp.status_code) from e

    async def aclose(self) -> None:
        await self._client.aclose()
