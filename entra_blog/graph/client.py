"""
Synchronous REST clients for Microsoft Graph and Azure Resource Manager.
Pagination via nextLink, write gating through the WriteGuardian, and
fail-fast error handling: any non-success status raises immediately.
"""

from __future__ import annotations

import logging
from typing import Any, Generator, Optional

import httpx

from ..config import (
    ARM_AUTHORIZATION_API_VERSION,
    ARM_BASE_URL,
    GRAPH_API_VERSION,
    GRAPH_BASE_URL,
    MAX_PAGES_PER_ENDPOINT,
    REQUEST_TIMEOUT_SECONDS,
)
from ..safety.guardian import WriteGuardian

logger = logging.getLogger("entra_blog.graph")


class GraphAPIError(Exception):
    """Raised when Graph or ARM returns a non-success status."""
    def __init__(self, status_code: int, message: str, url: str):
        self.status_code = status_code
        self.url = url
        self.message = message
        super().__init__(f"API Error {status_code} for {url}: {message}")


def odata_quote(value: str) -> str:
    """Quote a string literal for an OData $filter expression."""
    return "'" + value.replace("'", "''") + "'"


class RestClient:
    """
    Base client shared by Graph and ARM.
    Features:
      - Write requests validated (and possibly only planned) by the guardian
      - Automatic pagination following the API's next-link property
      - No retries: errors surface on the first failed request
    """

    base_url: str = ""
    next_link_key: str = "nextLink"

    def __init__(
        self,
        access_token: str,
        guardian: WriteGuardian,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.access_token = access_token
        self.guardian = guardian
        self._transport = transport
        self._request_count = 0
        self._client: Optional[httpx.Client] = None

    def __enter__(self):
        self._client = httpx.Client(
            timeout=httpx.Timeout(REQUEST_TIMEOUT_SECONDS, connect=30.0),
            headers={
                "Authorization": f"Bearer {self.access_token}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            transport=self._transport,
        )
        return self

    def __exit__(self, *args):
        if self._client:
            self._client.close()
            self._client = None

    def _build_url(self, endpoint: str) -> str:
        """Build full URL from relative endpoint."""
        if endpoint.startswith("http"):
            return endpoint
        endpoint = endpoint.lstrip("/")
        return f"{self.base_url}/{endpoint}"

    def _default_params(self, url: str) -> dict:
        return {}

    def _params(self, url: str, params: Optional[dict]) -> dict:
        merged = self._default_params(url)
        if params:
            merged.update(params)
        return merged

    # --- Reads ---

    def get(self, endpoint: str, params: Optional[dict] = None) -> dict:
        """Execute a single GET request."""
        url = self._build_url(endpoint)
        self.guardian.validate_request("GET", url)
        return self._execute("GET", url, params=self._params(url, params))

    def get_optional(self, endpoint: str, params: Optional[dict] = None) -> Optional[dict]:
        """GET that returns None on 404 instead of raising."""
        try:
            return self.get(endpoint, params=params)
        except GraphAPIError as e:
            if e.status_code == 404:
                logger.debug(f"404 Not Found: {e.url}")
                return None
            raise

    def get_all_pages(self, endpoint: str, params: Optional[dict] = None) -> list[dict]:
        """Fetch all pages of a paginated endpoint into a list."""
        return list(self.get_all_pages_stream(endpoint, params))

    def get_all_pages_stream(
        self,
        endpoint: str,
        params: Optional[dict] = None,
    ) -> Generator[dict, None, None]:
        """Yield every item of a paginated collection, one page at a time."""
        url: Optional[str] = self._build_url(endpoint)
        query: Optional[dict] = self._params(url, params)
        pages = 0

        while url and pages < MAX_PAGES_PER_ENDPOINT:
            self.guardian.validate_request("GET", url)
            data = self._execute("GET", url, params=query)

            for item in data.get("value", []):
                yield item

            url = data.get(self.next_link_key)
            query = None  # next link carries all params
            pages += 1

        if url:
            logger.warning(
                f"Pagination safety cap reached ({MAX_PAGES_PER_ENDPOINT} pages) "
                f"for endpoint: {endpoint}"
            )

    # --- Writes ---

    def post(self, endpoint: str, json_body: Optional[dict] = None) -> dict:
        return self._write("POST", endpoint, json_body)

    def put(self, endpoint: str, json_body: Optional[dict] = None) -> dict:
        return self._write("PUT", endpoint, json_body)

    def _write(self, method: str, endpoint: str, json_body: Optional[dict]) -> dict:
        url = self._build_url(endpoint)
        if not self.guardian.validate_request(method, url, json_body):
            return {"_what_if": True}
        return self._execute(method, url, params=self._params(url, None), json_body=json_body)

    # --- Transport ---

    def _execute(
        self,
        method: str,
        url: str,
        params: Optional[dict] = None,
        json_body: Optional[dict] = None,
    ) -> dict:
        """Send one request and decode the response, raising on any error status."""
        if not self._client:
            raise RuntimeError(f"{type(self).__name__} not initialized. Use 'with' context.")

        response = self._client.request(method, url, params=params or None, json=json_body)
        self._request_count += 1
        logger.debug(f"{method} {response.request.url} -> {response.status_code}")

        if response.status_code in (200, 201, 202):
            if not response.content or not response.content.strip():
                return {}
            return response.json()

        if response.status_code == 204:
            return {}

        raise GraphAPIError(response.status_code, _error_message(response), url)

    def get_stats(self) -> dict:
        """Return client statistics."""
        return {"total_requests": self._request_count}


def _error_message(response: httpx.Response) -> str:
    try:
        error_body = response.json() if response.content else {}
    except ValueError:
        return response.text[:200]
    error = error_body.get("error", {}) if isinstance(error_body, dict) else {}
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    return response.text[:200] or response.reason_phrase


class GraphClient(RestClient):
    """Microsoft Graph v1.0 client."""

    base_url = f"{GRAPH_BASE_URL}/{GRAPH_API_VERSION}"
    next_link_key = "@odata.nextLink"


class ArmClient(RestClient):
    """Azure Resource Manager client; adds api-version to first-hop requests."""

    base_url = ARM_BASE_URL
    next_link_key = "nextLink"

    def __init__(self, *args: Any, api_version: str = ARM_AUTHORIZATION_API_VERSION, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.api_version = api_version

    def _default_params(self, url: str) -> dict:
        if "api-version=" in url:
            return {}
        return {"api-version": self.api_version}
