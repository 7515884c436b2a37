"""Query string helpers for ServiceTrade resource listings."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote

# Company ``type`` filter values and the boolean flag each one sets
COMPANY_TYPE_FLAGS = {
    "vendor": "isVendor",
    "customer": "isCustomer",
    "contractor": "isContractor",
    "contractee": "isContractee",
}

COMPANY_FILTER_FIELDS = (
    "type",
    "name",
    "refNumber",
    "city",
    "state",
    "postalCode",
    "status",
    "createdBefore",
    "createdAfter",
    "updatedBefore",
    "updatedAfter",
    "tag",
    "officeId",
)


def apply_type_filter(options: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Replace a ``type`` option with its boolean flag.

    Unrecognised ``type`` values are dropped.  Keys supplied by the
    caller take precedence over the flag derived from ``type``.
    """
    params = dict(options or {})
    company_type = params.pop("type", None)
    flag = COMPANY_TYPE_FLAGS.get(company_type) if isinstance(company_type, str) else None
    if flag is None:
        return params
    return {flag: True, **params}


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_format_value(v) for v in value)
    return str(value)


def build_query_string(params: Mapping[str, Any]) -> str:
    """Serialise ``params`` into ``key=value&...`` form.

    Keys and values are percent-encoded separately, ``None`` values are
    left out, and list values are joined with commas into a single
    parameter rather than repeated keys.
    """
    parts = []
    for key, value in params.items():
        if value is None:
            continue
        parts.append(f"{quote(str(key), safe='')}={quote(_format_value(value), safe='')}")
    return "&".join(parts)
