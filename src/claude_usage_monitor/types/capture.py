"""Network capture types."""

from dataclasses import dataclass, field
from enum import Enum


class EndpointKind(str, Enum):
    USAGE = "usage"
    PREPAID_CREDITS = "prepaidCredits"
    OVERAGE_SPEND_LIMIT = "overageSpendLimit"


@dataclass(frozen=True)
class CapturedEndpoint:
    method: str
    url: str


@dataclass
class CapturedRequest:
    """A distinguished endpoint retained for replay."""
    url: str
    headers: dict[str, str] = field(default_factory=dict)
