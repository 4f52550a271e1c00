"""
core/payloads.py
----------------
Guard against callers trying to move data across the tenant boundary by
putting an organisation id in a mutation payload.

The check is key-based, not value-based: a payload carrying org_id is
rejected even when the value matches the caller's own organisation.
"""

import re
from typing import Any, Iterable, List

from offerdesk.core.errors import ValidationError
from offerdesk.core.logging import get_logger

logger = get_logger(__name__)

_TENANT_KEYS = frozenset({"orgid", "organizationid", "organisationid", "tenantid"})
_SEPARATORS = re.compile(r"[\s_\-]")


def is_tenant_key(key: Any) -> bool:
    if not isinstance(key, str):
        return False
    return _SEPARATORS.sub("", key).lower() in _TENANT_KEYS


def find_tenant_keys(keys: Iterable[Any]) -> List[str]:
    return sorted(str(k) for k in keys if is_tenant_key(k))


def reject_tenant_override(payload: Any) -> None:
    """Raise ValidationError if a mapping payload names an organisation id."""
    if not isinstance(payload, dict):
        return
    offending = find_tenant_keys(payload.keys())
    if offending:
        logger.warning("Rejected payload with organization override", fields=offending)
        raise ValidationError("The organization cannot be set in the request payload")
