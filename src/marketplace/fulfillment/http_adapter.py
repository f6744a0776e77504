"""Shared HTTP plumbing for provider adapters that talk to a REST API."""

from typing import Any

import httpx
import structlog

from marketplace.fulfillment.port import FulfillmentProvider, FulfillmentProviderError

logger = structlog.get_logger(__name__)


class HttpFulfillmentProvider(FulfillmentProvider):
    """Base class opening one ``httpx.AsyncClient`` per call.

    ``transport`` is passed straight to httpx so tests can plug in
    ``httpx.MockTransport``.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    def _error_message(self, response: httpx.Response, operation: str) -> str:
        return f"{operation} failed: {response.status_code} - {response.text}"

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        json: dict | None = None,
        params: dict | None = None,
    ) -> Any:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._headers(),
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, json=json, params=params)
        except httpx.HTTPError as exc:
            logger.warning("Provider request failed", provider=self.name, operation=operation, error=str(exc))
            raise FulfillmentProviderError(self.name, f"{operation} failed: {exc}") from exc

        if response.is_error:
            logger.warning(
                "Provider returned an error",
                provider=self.name,
                operation=operation,
                status_code=response.status_code,
            )
            raise FulfillmentProviderError(
                self.name,
                self._error_message(response, operation),
                status_code=response.status_code,
            )

        if not response.content:
            return {}
        return response.json()
