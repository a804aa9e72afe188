"""
VAPI HTTP Plumbing
==================

Shared base for the voice and chat REST clients: bearer-token headers,
timeouts, tracing and mapping of httpx failures onto the library's error
taxonomy.
"""

from typing import Any, Dict, Optional

import httpx
from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode

from utils.ml_logging import get_logger
from vapi.config import DEFAULT_VAPI_BASE_URL
from vapi.enums.monitoring import SpanAttr
from vapi.exceptions import APIError, ResponseParseError, TransportError

logger = get_logger("vapi.http")
tracer = trace.get_tracer(__name__)

JSON_CONTENT_TYPE = "application/json"


class VapiHttpClient:
    """
    Base REST client for the VAPI API.

    Accepts an optional shared ``httpx.AsyncClient``; otherwise it owns one and
    releases it in ``aclose()``. Callers cancel in-flight requests by
    cancelling the awaiting task (or wrapping calls in ``asyncio.timeout``).
    """

    peer_service = "vapi-api"

    def __init__(
        self,
        api_token: str,
        base_url: str = DEFAULT_VAPI_BASE_URL,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_token = api_token
        self.base_url = (base_url or DEFAULT_VAPI_BASE_URL).rstrip("/")
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))
        self._client_owned = client is None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def aclose(self) -> None:
        if self._client_owned and not self._client.is_closed:
            await self._client.aclose()

    def set_timeout(self, seconds: float) -> None:
        """Change the per-request timeout used from now on."""
        self.timeout = seconds
        self._client.timeout = httpx.Timeout(seconds)

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def headers(
        self,
        content_type: Optional[str] = JSON_CONTENT_TYPE,
        accept: Optional[str] = None,
    ) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {self.api_token}"}
        if content_type:
            headers["Content-Type"] = content_type
        if accept:
            headers["Accept"] = accept
        return headers

    async def request(
        self,
        method: str,
        path: str,
        operation: str,
        *,
        content_type: Optional[str] = JSON_CONTENT_TYPE,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Perform one request and return the response when it is 2xx.

        :param method: HTTP method.
        :param path: Path relative to the base URL.
        :param operation: Short name used in spans, logs and error messages.
        :param content_type: Content-Type header; None lets httpx choose
            (multipart uploads).
        :raises TransportError: On connection or timeout failures.
        :raises APIError: On non-2xx responses, carrying status and body.
        """
        url = self.url(path)
        with tracer.start_as_current_span(
            f"vapi.{operation}",
            kind=SpanKind.CLIENT,
            attributes={
                SpanAttr.PEER_SERVICE.value: self.peer_service,
                SpanAttr.HTTP_METHOD.value: method,
                SpanAttr.HTTP_URL.value: url,
                SpanAttr.OPERATION_NAME.value: operation,
            },
        ) as span:
            try:
                response = await self._client.request(
                    method, url, headers=self.headers(content_type), **kwargs
                )
            except httpx.TransportError as exc:
                span.set_status(Status(StatusCode.ERROR, str(exc)))
                logger.error(f"{operation}: {method} {url} failed: {exc}")
                raise TransportError(f"{operation}: request failed: {exc}") from exc

            span.set_attribute(SpanAttr.HTTP_STATUS_CODE.value, response.status_code)
            if not response.is_success:
                span.set_status(Status(StatusCode.ERROR, f"HTTP {response.status_code}"))
                logger.warning(
                    f"{operation}: {method} {url} returned {response.status_code}"
                )
                raise APIError(response.status_code, response.text, operation)

        logger.debug(f"{operation}: {method} {url} -> {response.status_code}")
        return response

    async def request_json(self, method: str, path: str, operation: str, **kwargs: Any) -> Any:
        """Like ``request`` but decodes the JSON body (None for an empty body)."""
        response = await self.request(method, path, operation, **kwargs)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ResponseParseError(f"{operation}: invalid JSON response: {exc}") from exc
