"""Authenticated HTTP transport for Salesforce orgs."""

from __future__ import annotations

from sfbulk.connectors.base import Connector
from sfbulk.connectors.salesforce import SalesforceConnector

__all__ = ["Connector", "SalesforceConnector"]
