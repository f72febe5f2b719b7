"""Client for the contract scoring service, normally reached through the analysis proxy."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from dagscanner.errors import BackendError, EmptyInputError, NetworkError
from dagscanner.schemas.schemas import AnalysisResult

logger = logging.getLogger(__name__)


class AnalysisRequestClient:
    """Single request/response exchange with the scoring backend.

    Never retries: a failed request is reported to the caller as-is.
    """

    def __init__(
        self,
        api_url: str,
        *,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._api_url = api_url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> "AnalysisRequestClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def submit(self, address: str) -> AnalysisResult:
        if not address or not address.strip():
            raise EmptyInputError()

        try:
            response = await self._client.post(
                self._api_url,
                json={"address": address},
                headers={"Content-Type": "application/json"},
            )
        except httpx.TimeoutException as exc:
            logger.warning("Analysis request timed out: %s", exc)
            raise NetworkError("The analysis service did not respond in time.") from exc
        except httpx.HTTPError as exc:
            logger.warning("Analysis request failed: %s", exc)
            raise NetworkError(f"Could not reach the analysis service: {exc}") from exc

        if not response.is_success:
            message = _error_message(response)
            logger.warning("Analysis backend returned %s: %s", response.status_code, message)
            raise BackendError(response.status_code, message)

        try:
            return AnalysisResult.model_validate(response.json())
        except ValueError as exc:
            logger.warning("Malformed analysis response: %s", exc)
            raise BackendError(
                response.status_code, "Malformed analysis response from the backend."
            ) from exc


def _error_message(response: httpx.Response) -> Optional[str]:
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return None


__all__ = ["AnalysisRequestClient"]
