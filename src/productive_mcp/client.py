"""Productive.io API client with authentication and rate limiting.

Every upstream call funnels through ``ProductiveClient.request``:

    wait at the rate limiter -> dispatch -> decode or classify the failure

The client never retries. The only delay it adds is the rate limiter's wait
before a request is sent.
"""
import json
import logging
from typing import Any, Literal, Optional

import httpx

from .config import API_URL
from .errors import (
    ProductiveAPIError,
    http_error,
    invalid_response_error,
    no_response_error,
    request_setup_error,
)
from .rate_limiter import RateLimiter

logger = logging.getLogger("productive-mcp.client")

JSONAPI_MEDIA_TYPE = "application/vnd.api+json"

HttpMethod = Literal["GET", "POST", "PATCH", "DELETE"]


def safe_log(level: int, message: str) -> None:
    """Log without ever raising (stderr may be a closed pipe)."""
    try:
        logger.log(level, message)
    except Exception:
        pass


class ProductiveClient:
    """Authenticated, rate-limited gateway to the Productive.io JSON:API.

    One instance owns one set of credentials and one rate limiter for the
    lifetime of the process.
    """

    def __init__(
        self,
        api_token: str,
        org_id: str,
        base_url: str = API_URL,
        rate_limiter: Optional[RateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ):
        self._org_id = org_id
        self._transport = transport
        self.rate_limiter = rate_limiter or RateLimiter()
        self._http = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "X-Auth-Token": api_token,
                "X-Organization-Id": org_id,
                "Content-Type": JSONAPI_MEDIA_TYPE,
                "Accept": JSONAPI_MEDIA_TYPE,
            },
        )

    @property
    def org_id(self) -> str:
        return self._org_id

    async def __aenter__(self) -> "ProductiveClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def request(
        self,
        method: HttpMethod,
        path: str,
        body: Any = None,
        params: Optional[dict[str, Any]] = None,
    ) -> dict:
        """Send one API request and return the decoded JSON:API envelope.

        Raises:
            ProductiveAPIError: classified failure (setup, no response, unreadable response or HTTP status)
        """
        try:
            request = self._http.build_request(
                method,
                path,
                params=_clean_params(params),
                content=json.dumps(body) if body is not None else None,
            )
        except Exception as e:
            safe_log(logging.ERROR, f"[Productive API Error] Request setup failed: {e}")
            raise request_setup_error(e) from e

        await self.rate_limiter.acquire()

        safe_log(
            logging.INFO,
            f"[Productive API Request] {method} {path} "
            f"params={json.dumps(params) if params else None} has_data={body is not None}",
        )

        try:
            response = await self._http.send(request)
        except httpx.TransportError as e:
            safe_log(
                logging.ERROR,
                f"[Productive API Error] No response received: {method} {path} ({type(e).__name__}: {e})",
            )
            raise no_response_error(e) from e
        except httpx.RequestError as e:
            # Sent, but the body could not be decoded or redirects never settled
            safe_log(
                logging.ERROR,
                f"[Productive API Error] Unreadable response: {method} {path} ({type(e).__name__}: {e})",
            )
            raise invalid_response_error(e) from e

        if response.is_error:
            data = _decode_body(response)
            safe_log(
                logging.ERROR,
                f"[Productive API Error] status={response.status_code} method={method} url={path} data={_dump(data)}",
            )
            raise http_error(response.status_code, data)

        data = _decode_body(response)
        safe_log(
            logging.INFO,
            f"[Productive API Response] {method} {path} status={response.status_code} size={len(response.content)}",
        )
        if not isinstance(data, dict):
            return {}
        return data

    async def get(self, path: str, params: Optional[dict[str, Any]] = None) -> dict:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, body: Any, params: Optional[dict[str, Any]] = None) -> dict:
        return await self.request("POST", path, body=body, params=params)

    async def patch(self, path: str, body: Any, params: Optional[dict[str, Any]] = None) -> dict:
        return await self.request("PATCH", path, body=body, params=params)

    async def delete(self, path: str) -> dict:
        return await self.request("DELETE", path)

    def external_client(self, timeout: float = 30.0) -> httpx.AsyncClient:
        """Plain HTTP client without Productive credentials, for file storage and downloads."""
        return httpx.AsyncClient(timeout=timeout, transport=self._transport, follow_redirects=True)

    def get_rate_limit_status(self) -> dict:
        return self.rate_limiter.get_status()

    async def fetch_all_pages(
        self,
        path: str,
        params: Optional[dict[str, Any]] = None,
        page_size: int = 100,
    ) -> tuple[list[dict], list[dict]]:
        """Follow JSON:API pagination and collect every resource.

        Stops at ``meta.total_pages``, at ``meta.total_count``, or on a short page.

        Returns:
            (resources, included) accumulated across all pages
        """
        resources: list[dict] = []
        included: list[dict] = []
        page = 1

        while True:
            envelope = await self.get(path, {**(params or {}), "page[number]": page, "page[size]": page_size})
            data = envelope.get("data") or []
            if isinstance(data, dict):
                data = [data]
            resources.extend(data)
            included.extend(envelope.get("included") or [])

            meta = envelope.get("meta") or {}
            total_pages = meta.get("total_pages")
            total_count = meta.get("total_count")

            if total_pages is not None:
                if page >= total_pages:
                    break
            elif total_count is not None:
                if len(resources) >= total_count:
                    break
            elif len(data) < page_size:
                break

            if not data:
                break
            page += 1

        return resources, included


def _clean_params(params: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    """Drop None values and render booleans the way the API expects."""
    if not params:
        return None
    cleaned = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        cleaned[key] = value
    return cleaned


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _dump(data: Any) -> str:
    try:
        return json.dumps(data, indent=2)
    except (TypeError, ValueError):
        return repr(data)


__all__ = ["ProductiveClient", "ProductiveAPIError", "safe_log"]
