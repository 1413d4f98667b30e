"""Salesforce Bulk node — maps resource/operation pairs onto API calls."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field

from sfbulk.apex.executor import ApexExecutor, org_id_from_identity_url
from sfbulk.bulk.orchestrator import BulkIngestOrchestrator, BulkItem
from sfbulk.connectors.salesforce import SalesforceConnector
from sfbulk.core.config import BulkIngestOptions
from sfbulk.core.constants import BULK_WRITE_OPERATIONS, NodeOperation, Resource
from sfbulk.core.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)


class NodeParameters(BaseModel):
    """Node-level parameters, shared by every input item.

    Accepts the host's camelCase names (``customObject``, ``useBulkApi``...)
    as well as the snake_case attribute names.
    """

    model_config = ConfigDict(populate_by_name=True)

    resource: str = Resource.CUSTOM_OBJECT
    operation: str
    custom_object: str | None = Field(default=None, alias="customObject")
    use_bulk_api: bool = Field(default=False, alias="useBulkApi")
    external_id: str | None = Field(default=None, alias="externalId")
    apex_code: str | None = Field(default=None, alias="apexCode")
    query: str | None = None
    fields: list[str] = Field(default_factory=lambda: ["Id"])
    conditions: str | None = None
    """SOQL ``WHERE`` clause body for ``getAll``, without the keyword."""
    limit: int | None = Field(default=None, ge=1)


_Handler = Callable[
    [NodeParameters, Sequence[BulkItem], asyncio.Event | None],
    Awaitable[list[dict[str, Any]]],
]


class SalesforceBulkNode:
    """Entry point the workflow host calls once per node execution.

    Supported pairs:

    * ``customObject`` / create, update, delete, upsert with ``useBulkApi``
      -> one Bulk API v2 ingest job for all items
    * ``customObject`` / getAll -> SOQL ``SELECT`` over the object
    * ``search`` / query -> raw SOQL query
    * ``anonymousApexExecution`` / executeApex -> Apex SOAP call

    Example::

        async with SalesforceConnector(config) as sf:
            node = SalesforceBulkNode(sf)
            rows = await node.execute(
                {"operation": "create", "customObject": "Account", "useBulkApi": True},
                [{"customFields": {"Name": "Acme"}}],
            )
    """

    def __init__(
        self,
        connector: SalesforceConnector,
        *,
        options: BulkIngestOptions | None = None,
        org_id: str | None = None,
        identity_url: str | None = None,
    ) -> None:
        self._connector = connector
        self._options = options or BulkIngestOptions()
        self._org_id = org_id
        self._identity_url = identity_url
        self._handlers: dict[tuple[str, str], _Handler] = {
            (Resource.CUSTOM_OBJECT, NodeOperation.GET_ALL): self._get_all,
            (Resource.SEARCH, NodeOperation.QUERY): self._query,
            (Resource.ANONYMOUS_APEX, NodeOperation.EXECUTE_APEX): self._execute_apex,
        }
        for op in BULK_WRITE_OPERATIONS:
            self._handlers[(Resource.CUSTOM_OBJECT, op)] = self._bulk_ingest

    async def execute(
        self,
        parameters: NodeParameters | dict[str, Any],
        items: Sequence[BulkItem | dict[str, Any]] = (),
        *,
        cancel: asyncio.Event | None = None,
    ) -> list[dict[str, Any]]:
        """Run the configured operation and return the node's output rows."""
        params = (
            parameters
            if isinstance(parameters, NodeParameters)
            else NodeParameters.model_validate(parameters)
        )
        bulk_items = [
            item if isinstance(item, BulkItem) else BulkItem.model_validate(item)
            for item in items
        ]

        handler = self._handlers.get((params.resource, params.operation))
        if handler is None:
            raise ConfigurationError(
                f"Unsupported operation {params.operation!r} "
                f"for resource {params.resource!r}",
                details={"resource": params.resource, "operation": params.operation},
            )

        logger.info(
            "node.execute",
            resource=params.resource,
            operation=params.operation,
            items=len(bulk_items),
        )
        return await handler(params, bulk_items, cancel)

    async def _bulk_ingest(
        self,
        params: NodeParameters,
        items: Sequence[BulkItem],
        cancel: asyncio.Event | None = None,
    ) -> list[dict[str, Any]]:
        if not params.use_bulk_api:
            raise ConfigurationError(
                f"{params.operation!r} on {params.resource!r} requires useBulkApi; "
                "single-record writes are not handled by this node"
            )
        orchestrator = BulkIngestOrchestrator(self._connector, self._options)
        result = await orchestrator.run(
            params.custom_object or "",
            params.operation,
            items,
            external_id_field=params.external_id,
            cancel=cancel,
        )
        return [outcome.to_json() for outcome in result.outcomes]

    async def _get_all(
        self,
        params: NodeParameters,
        items: Sequence[BulkItem],
        cancel: asyncio.Event | None = None,
    ) -> list[dict[str, Any]]:
        if not params.custom_object:
            raise ConfigurationError("customObject is required for getAll")
        return await self._connector.query_all(
            build_select(params.custom_object, params.fields, params.conditions, params.limit),
            limit=params.limit,
        )

    async def _query(
        self,
        params: NodeParameters,
        items: Sequence[BulkItem],
        cancel: asyncio.Event | None = None,
    ) -> list[dict[str, Any]]:
        if not params.query:
            raise ConfigurationError("query is required for search")
        return await self._connector.query_all(params.query, limit=params.limit)

    async def _execute_apex(
        self,
        params: NodeParameters,
        items: Sequence[BulkItem],
        cancel: asyncio.Event | None = None,
    ) -> list[dict[str, Any]]:
        if not params.apex_code:
            raise ConfigurationError("apexCode is required for executeApex")
        executor = ApexExecutor(self._connector, self._resolve_org_id())
        result = await executor.execute(params.apex_code)
        return [result.model_dump()]

    def _resolve_org_id(self) -> str:
        if self._org_id:
            return self._org_id
        if self._identity_url:
            return org_id_from_identity_url(self._identity_url)
        raise ConfigurationError("org_id or identity_url is required to execute Apex")


def build_select(
    sobject: str,
    fields: Sequence[str],
    conditions: str | None = None,
    limit: int | None = None,
) -> str:
    """Compose ``SELECT ... FROM ...`` with optional ``WHERE`` and ``LIMIT``."""
    soql = f"SELECT {', '.join(fields or ['Id'])} FROM {sobject}"
    if conditions:
        soql += f" WHERE {conditions}"
    if limit is not None:
        soql += f" LIMIT {limit}"
    return soql
