from __future__ import annotations

from sfbulk.apex.executor import ApexExecutor, org_id_from_identity_url

__all__ = ["ApexExecutor", "org_id_from_identity_url"]
