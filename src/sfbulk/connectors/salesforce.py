"""Salesforce connector — authenticated REST transport and SOQL search."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from sfbulk.connectors.base import Connector

logger = structlog.get_logger(__name__)

_PASSTHROUGH_PREFIXES = ("http://", "https://", "/services/")


class SalesforceConnector(Connector):
    """Connector for the Salesforce REST, Bulk v2 and SOAP endpoints.

    ``instance_url`` must be set to the org's instance URL
    (e.g. ``"https://yourorg.my.salesforce.com"``) and ``access_token`` to
    a valid OAuth access token.

    Relative paths are resolved against ``/services/data/{api_version}``;
    paths already starting with ``/services/`` (SOAP, ``nextRecordsUrl``)
    are sent unchanged.

    Usage::

        config = SalesforceConfig(
            instance_url="https://yourorg.my.salesforce.com",
            access_token="00Dxx0000...",
        )
        async with SalesforceConnector(config) as sf:
            job = await sf.request("GET", f"/jobs/ingest/{job_id}/")
    """

    def _build_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {
            "Accept": "application/json",
            **self._config.extra_headers,
        }
        if self._config.access_token:
            headers["Authorization"] = f"Bearer {self._config.access_token}"
        return headers

    @property
    def api_prefix(self) -> str:
        """Return the REST API path prefix including version."""
        return f"/services/data/{self._config.api_version}"

    def resolve_path(self, path: str) -> str:
        if path.startswith(_PASSTHROUGH_PREFIXES):
            return path
        return f"{self.api_prefix}/{path.lstrip('/')}"

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        content: str | bytes | None = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        retry: bool = True,
    ) -> Any:
        """Send one authenticated request and return the decoded body.

        Args:
            method: HTTP method.
            path: API path, relative to the versioned REST prefix.
            json: JSON-serialisable request body.
            content: Raw request body (CSV upload, SOAP envelope).
            params: Query string parameters.
            headers: Per-request header overrides.
            retry: Apply the configured retry policy. Pass ``False`` for
                requests that must not be sent twice, such as creating a
                job.

        Returns:
            Parsed JSON for JSON responses, the response text for anything
            else (CSV result sets, SOAP XML), or ``None`` for empty bodies.

        Raises:
            AuthenticationError, RateLimitError, ServerError, APIError:
                For non-2xx responses.
            APIConnectionError, APITimeoutError: For transport failures.
        """
        client = self._ensure_connected()
        request = client.build_request(
            method,
            self.resolve_path(path),
            json=json,
            content=content,
            params=params,
            headers=headers,
        )
        logger.debug("salesforce.request", method=method, path=request.url.path)

        policy = self._config.retry_policy
        if policy is not None and retry:
            response = await policy.execute(self._send, request)
        else:
            response = await self._send(request)
        return _decode_body(response)

    async def query(self, soql: str) -> dict[str, Any]:
        """Execute a SOQL query and return the first page.

        Returns:
            Query result with ``records``, ``totalSize``, ``done`` and,
            when more pages exist, ``nextRecordsUrl``.
        """
        result: dict[str, Any] = await self.request("GET", "/query", params={"q": soql})
        return result

    async def query_all(self, soql: str, limit: int | None = None) -> list[dict[str, Any]]:
        """Execute a SOQL query and follow ``nextRecordsUrl`` until done.

        Args:
            soql: A valid SOQL query string.
            limit: Stop once this many records have been collected.
        """
        page = await self.query(soql)
        records: list[dict[str, Any]] = list(page.get("records", []))
        while not page.get("done", True) and page.get("nextRecordsUrl"):
            if limit is not None and len(records) >= limit:
                break
            page = await self.request("GET", page["nextRecordsUrl"])
            records.extend(page.get("records", []))

        logger.info(
            "salesforce.query_all",
            total_size=page.get("totalSize"),
            returned=len(records) if limit is None else min(limit, len(records)),
        )
        if limit is not None:
            return records[:limit]
        return records


def _decode_body(response: httpx.Response) -> Any:
    if response.status_code == 204 or not response.content:
        return None
    if "json" in response.headers.get("content-type", ""):
        return response.json()
    return response.text
