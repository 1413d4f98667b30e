from __future__ import annotations

from sfbulk.nodes.salesforce_bulk import NodeParameters, SalesforceBulkNode

__all__ = ["NodeParameters", "SalesforceBulkNode"]
