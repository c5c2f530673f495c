"""Declarative field schema for the Claude.ai usage API payloads.

The usage endpoint's response shape varies by plan tier and has changed
between releases. Each canonical field is described by a FieldSpec holding
its path into the payload, so supporting a new field is a one-line table
change rather than new branching in the fetcher.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from claude_usage_monitor.errors import SchemaError
from claude_usage_monitor.types.capture import EndpointKind
from claude_usage_monitor.types.usage import MonthlyCredits, UsageRecord, UsageWindow
from claude_usage_monitor.utils.formatting import calculate_reset_time, parse_iso_timestamp

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "2025.10"


@dataclass(frozen=True)
class FieldSpec:
    path: tuple[str, ...]
    required: bool = False

    def extract(self, payload: Any) -> Any:
        node = payload
        for key in self.path:
            if not isinstance(node, dict):
                return None
            node = node.get(key)
            if node is None:
                return None
        return node


USAGE_API_SCHEMA: dict[str, FieldSpec] = {
    "five_hour.utilization": FieldSpec(("five_hour", "utilization"), required=True),
    "five_hour.resets_at": FieldSpec(("five_hour", "resets_at")),
    "seven_day.utilization": FieldSpec(("seven_day", "utilization")),
    "seven_day.resets_at": FieldSpec(("seven_day", "resets_at")),
    # Plan-dependent weekly model limits
    "seven_day_sonnet.utilization": FieldSpec(("seven_day_sonnet", "utilization")),
    "seven_day_sonnet.resets_at": FieldSpec(("seven_day_sonnet", "resets_at")),
    "seven_day_opus.utilization": FieldSpec(("seven_day_opus", "utilization")),
    "seven_day_opus.resets_at": FieldSpec(("seven_day_opus", "resets_at")),
    "extra_usage.value": FieldSpec(("extra_usage",)),
}

# Amounts are reported in minor currency units
OVERAGE_API_SCHEMA: dict[str, FieldSpec] = {
    "enabled": FieldSpec(("is_enabled",)),
    "limit": FieldSpec(("monthly_credit_limit",), required=True),
    "used": FieldSpec(("used_credits",)),
    "currency": FieldSpec(("currency",)),
}

API_ENDPOINTS: dict[EndpointKind, re.Pattern] = {
    EndpointKind.USAGE: re.compile(r"/api/organizations/[^/?#]+/usage(?:[?#]|$)"),
    EndpointKind.PREPAID_CREDITS: re.compile(r"/api/organizations/[^/?#]+/prepaid/credits(?:[?#]|$)"),
    EndpointKind.OVERAGE_SPEND_LIMIT: re.compile(
        r"/api/organizations/[^/?#]+/overage_spend_limit(?:[?#]|$)"
    ),
}


def extract_from_schema(payload: Any, schema: dict[str, FieldSpec]) -> dict[str, Any]:
    """Extract every schema field from payload.

    Raises SchemaError when a required field is absent.
    """
    result: dict[str, Any] = {}
    for name, spec in schema.items():
        value = spec.extract(payload)
        if value is None and spec.required:
            raise SchemaError(f"Missing required field: {name}")
        result[name] = value
    return result


def match_endpoint(url: str) -> EndpointKind | None:
    """Return which distinguished endpoint a request URL hits, if any."""
    for kind, pattern in API_ENDPOINTS.items():
        if pattern.search(url):
            return kind
    return None


def process_overage_data(data: Any) -> MonthlyCredits | None:
    """Convert an overage spend-limit payload into monthly credits, or None."""
    if not isinstance(data, dict):
        return None
    try:
        fields = extract_from_schema(data, OVERAGE_API_SCHEMA)
    except SchemaError:
        return None
    if fields["enabled"] is False:
        return None

    limit = _as_number(fields["limit"]) / 100
    used = _as_number(fields["used"]) / 100
    if limit <= 0:
        return None
    return MonthlyCredits(
        used=used,
        limit=limit,
        currency=fields["currency"] or "USD",
        percent=round(used / limit * 100),
    )


def get_schema_info() -> dict:
    return {
        "version": SCHEMA_VERSION,
        "usageFields": list(USAGE_API_SCHEMA),
        "endpoints": [kind.value for kind in API_ENDPOINTS],
    }


def normalize_usage(
    payload: Any,
    credits: dict | None = None,
    overage: dict | None = None,
    now: datetime | None = None,
) -> UsageRecord:
    """Map a raw usage payload (plus optional credits/overage) to a UsageRecord."""
    fields = extract_from_schema(payload, USAGE_API_SCHEMA)
    if now is None:
        now = datetime.now(timezone.utc)

    utilization = fields["five_hour.utilization"]
    if not _is_number(utilization):
        raise SchemaError(f"five_hour.utilization is not numeric: {utilization!r}")

    return UsageRecord(
        five_hour=_window(fields, "five_hour", now),
        seven_day=_window(fields, "seven_day", now),
        seven_day_sonnet=_window(fields, "seven_day_sonnet", now),
        seven_day_opus=_window(fields, "seven_day_opus", now),
        extra_usage=fields["extra_usage.value"],
        monthly_credits=process_overage_data(overage),
        prepaid_credits=credits if isinstance(credits, dict) else None,
        fetched_at=now,
        raw_payload=payload,
        source="api",
        schema_version=SCHEMA_VERSION,
    )


def _window(fields: dict[str, Any], prefix: str, now: datetime) -> UsageWindow | None:
    utilization = fields.get(f"{prefix}.utilization")
    if not _is_number(utilization):
        return None
    resets_raw = fields.get(f"{prefix}.resets_at")
    return UsageWindow(
        utilization=utilization,
        resets_at=parse_iso_timestamp(resets_raw),
        reset_time=calculate_reset_time(resets_raw, now=now),
    )


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_number(value) -> float:
    return float(value) if _is_number(value) else 0.0
