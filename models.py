"""
Data models for the Price Manager service.
All models use Pydantic for validation and static typing.

PriceRate carries the record-level rules used to resolve a price:
validity at an instant, priority comparison and consistency.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC; naive values pass through."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class PriceRate(BaseModel):
    """One price offer for a brand's product during a validity window"""

    model_config = ConfigDict(frozen=True)

    brand_id: int
    product_id: int
    list_id: int  # rate list / tariff, also the tie-break key
    priority: int  # higher wins when windows overlap
    amount: Decimal
    currency: str  # ISO 4217
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None

    @field_validator("valid_from", "valid_to")
    @classmethod
    def _normalize_bounds(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value)

    def selection_key(self) -> Tuple[int, int]:
        """Ordering used to pick a winner: priority first, then list id."""
        return self.priority, self.list_id

    def is_valid_at(self, instant: Optional[datetime]) -> bool:
        return is_valid_at(self, instant)

    def has_higher_priority_than(self, other: Optional["PriceRate"]) -> bool:
        return has_higher_priority(self, other)

    def is_consistent(self) -> bool:
        return is_consistent(self)


class SearchCriteria(BaseModel):
    """Identity data for a candidate lookup"""

    model_config = ConfigDict(frozen=True)

    brand_id: int
    product_id: int
    query_time: datetime

    @field_validator("query_time")
    @classmethod
    def _normalize_query_time(cls, value: datetime) -> datetime:
        return to_naive_utc(value)


def is_valid_at(record: PriceRate, instant: Optional[datetime]) -> bool:
    """
    Check whether a rate applies at the given instant.

    Both bounds are inclusive. A missing bound or a missing instant
    always yields False.
    """
    if instant is None or record.valid_from is None or record.valid_to is None:
        return False
    instant = to_naive_utc(instant)
    return record.valid_from <= instant <= record.valid_to


def has_higher_priority(candidate: PriceRate, other: Optional[PriceRate]) -> bool:
    """
    Check whether ``candidate`` should be preferred over ``other``.

    Any rate beats no rate. Otherwise the higher priority wins and, on equal
    priority, the higher list id wins. A full tie is not a win, so a rate
    never has higher priority than itself.
    """
    if other is None:
        return True
    return candidate.selection_key() > other.selection_key()


def is_consistent(record: PriceRate) -> bool:
    """Validate the basic domain rules a rate must satisfy before it is stored."""
    return (
        record.brand_id > 0
        and record.product_id > 0
        and record.priority >= 0
        and record.amount > 0
        and record.valid_from is not None
        and record.valid_to is not None
        and record.valid_from <= record.valid_to
        and bool(record.currency and record.currency.strip())
    )


# API Response Models
class PriceResponse(BaseModel):
    """Final API response model"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    brand_id: int
    product_id: int
    price: float
    currency: str
    start_date: datetime
    end_date: datetime

    @classmethod
    def from_rate(cls, rate: PriceRate) -> "PriceResponse":
        """Map a selected rate to the API shape, with dates in UTC"""
        return cls(
            id=rate.list_id,
            brand_id=rate.brand_id,
            product_id=rate.product_id,
            price=float(rate.amount),
            currency=rate.currency,
            start_date=rate.valid_from.replace(tzinfo=timezone.utc),
            end_date=rate.valid_to.replace(tzinfo=timezone.utc),
        )


class ErrorResponse(BaseModel):
    """Error body shared by every failing endpoint"""

    code: str
    message: str
    timestamp: datetime

    @classmethod
    def now(cls, code: str, message: str) -> "ErrorResponse":
        return cls(
            code=code,
            message=message,
            timestamp=datetime.now(timezone.utc).replace(microsecond=0),
        )


class LookupStats(BaseModel):
    """Price lookup tracking"""

    total_requests: int = 0
    found: int = 0
    not_found: int = 0
    cache_hits: int = 0
    avg_latency_ms: float = 0.0
    last_not_found: Optional[datetime] = None
