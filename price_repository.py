"""
Rate store and candidate fetchers.

PriceRepository keeps rates in SQLite and answers time-range lookups;
InMemoryPriceRepository does the same over a plain list using PriceRate's
own validity check. Both satisfy the CandidateFetcher protocol consumed by
PriceService.
"""

import logging
import sqlite3
import threading
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Iterable, List, Optional, Protocol, runtime_checkable

from config import settings
from exceptions import InvalidPriceRateError
from models import PriceRate, SearchCriteria, is_consistent, is_valid_at, to_naive_utc

logger = logging.getLogger("price_manager.repository")


_SCHEMA = """\
CREATE TABLE IF NOT EXISTS prices (
    list_id    INTEGER PRIMARY KEY,
    brand_id   INTEGER NOT NULL,
    product_id INTEGER NOT NULL,
    priority   INTEGER NOT NULL,
    amount     TEXT    NOT NULL,
    currency   TEXT    NOT NULL,
    valid_from TEXT    NOT NULL,
    valid_to   TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_prices_lookup
    ON prices(brand_id, product_id, valid_from, valid_to);
"""

_SELECT_COLUMNS = (
    "SELECT list_id, brand_id, product_id, priority, amount, currency, "
    "valid_from, valid_to FROM prices"
)

_WHERE_VALID_AT = (
    " WHERE brand_id = ? AND product_id = ? AND ? BETWEEN valid_from AND valid_to"
    " ORDER BY priority DESC, list_id DESC"
)


# Reference dataset: brand 1 (ZARA), product 35455
REFERENCE_PRICES: List[PriceRate] = [
    PriceRate(
        brand_id=1, product_id=35455, list_id=1, priority=0,
        amount=Decimal("35.50"), currency="EUR",
        valid_from=datetime(2020, 6, 14, 0, 0, 0),
        valid_to=datetime(2020, 12, 31, 23, 59, 59),
    ),
    PriceRate(
        brand_id=1, product_id=35455, list_id=2, priority=1,
        amount=Decimal("25.45"), currency="EUR",
        valid_from=datetime(2020, 6, 14, 15, 0, 0),
        valid_to=datetime(2020, 6, 14, 18, 30, 0),
    ),
    PriceRate(
        brand_id=1, product_id=35455, list_id=3, priority=1,
        amount=Decimal("30.50"), currency="EUR",
        valid_from=datetime(2020, 6, 15, 0, 0, 0),
        valid_to=datetime(2020, 6, 15, 11, 0, 0),
    ),
    PriceRate(
        brand_id=1, product_id=35455, list_id=4, priority=1,
        amount=Decimal("38.95"), currency="EUR",
        valid_from=datetime(2020, 6, 15, 16, 0, 0),
        valid_to=datetime(2020, 12, 31, 23, 59, 59),
    ),
]


@runtime_checkable
class CandidateFetcher(Protocol):
    """Source of the rates valid for a brand's product at an instant"""

    def fetch_candidates(
        self, brand_id: int, product_id: int, query_time: datetime
    ) -> List[PriceRate]:
        """
        Return every rate valid at ``query_time``. May be empty.
        Order is not guaranteed.
        """
        ...


def _check_consistent(rate: PriceRate) -> None:
    if not is_consistent(rate):
        raise InvalidPriceRateError(
            f"Inconsistent price rate for list {rate.list_id} "
            f"(brand {rate.brand_id}, product {rate.product_id})"
        )


def _format_ts(value: datetime) -> str:
    return to_naive_utc(value).isoformat(sep=" ", timespec="microseconds")


def _row_to_rate(row: sqlite3.Row) -> PriceRate:
    return PriceRate(
        list_id=row["list_id"],
        brand_id=row["brand_id"],
        product_id=row["product_id"],
        priority=row["priority"],
        amount=Decimal(row["amount"]),
        currency=row["currency"],
        valid_from=datetime.fromisoformat(row["valid_from"]),
        valid_to=datetime.fromisoformat(row["valid_to"]),
    )


class PriceRepository:
    """SQLite-backed rate store."""

    def __init__(self, db_path: Optional[str] = None) -> None:
        path = db_path or settings.DATABASE_PATH
        if path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        logger.debug("PriceRepository opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    # ── Ingestion ────────────────────────────────────────

    def save(self, rate: PriceRate) -> None:
        """Store one rate, replacing any rate with the same list id."""
        self.save_all([rate])

    def save_all(self, rates: Iterable[PriceRate]) -> int:
        """Store rates in one transaction.

        Every rate must pass the consistency check, otherwise nothing is
        stored and InvalidPriceRateError is raised. Returns the number of
        rates written.
        """
        written = self._write(rates, "INSERT OR REPLACE")
        logger.info("Stored %d price rates", written)
        return written

    def seed_all(self, rates: Iterable[PriceRate]) -> int:
        """Store rates whose list id is not taken yet; existing rows are kept.

        Returns the number of rates actually inserted.
        """
        inserted = self._write(rates, "INSERT OR IGNORE")
        logger.info("Seeded %d price rates", inserted)
        return inserted

    def _write(self, rates: Iterable[PriceRate], verb: str) -> int:
        rates = list(rates)
        for rate in rates:
            _check_consistent(rate)

        rows = [
            (
                r.list_id, r.brand_id, r.product_id, r.priority,
                str(r.amount), r.currency.strip(),
                _format_ts(r.valid_from), _format_ts(r.valid_to),
            )
            for r in rates
        ]
        with self._lock, self._conn:
            before = self._conn.total_changes
            self._conn.executemany(
                f"{verb} INTO prices "
                "(list_id, brand_id, product_id, priority, amount, currency, valid_from, valid_to) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                rows,
            )
            return self._conn.total_changes - before

    def count(self) -> int:
        with self._lock:
            (total,) = self._conn.execute("SELECT COUNT(*) FROM prices").fetchone()
        return total

    # ── Lookups ──────────────────────────────────────────

    def find_by_criteria(self, criteria: SearchCriteria) -> List[PriceRate]:
        """Return the rates valid at the criteria's instant, best first."""
        params = (criteria.brand_id, criteria.product_id, _format_ts(criteria.query_time))
        with self._lock:
            rows = self._conn.execute(_SELECT_COLUMNS + _WHERE_VALID_AT, params).fetchall()
        logger.debug(
            "Found %d candidate rates for brand %s product %s at %s",
            len(rows), criteria.brand_id, criteria.product_id, criteria.query_time
        )
        return [_row_to_rate(row) for row in rows]

    def find_best_price(self, criteria: SearchCriteria) -> Optional[PriceRate]:
        """Return the winning rate directly from SQL, or None."""
        params = (criteria.brand_id, criteria.product_id, _format_ts(criteria.query_time))
        with self._lock:
            row = self._conn.execute(
                _SELECT_COLUMNS + _WHERE_VALID_AT + " LIMIT 1", params
            ).fetchone()
        return _row_to_rate(row) if row is not None else None

    def fetch_candidates(
        self, brand_id: int, product_id: int, query_time: datetime
    ) -> List[PriceRate]:
        return self.find_by_criteria(
            SearchCriteria(brand_id=brand_id, product_id=product_id, query_time=query_time)
        )


class InMemoryPriceRepository:
    """List-backed candidate fetcher, filtering with PriceRate.is_valid_at."""

    def __init__(self, rates: Optional[Iterable[PriceRate]] = None) -> None:
        self._rates: List[PriceRate] = []
        if rates:
            self.save_all(rates)

    def save(self, rate: PriceRate) -> None:
        self.save_all([rate])

    def save_all(self, rates: Iterable[PriceRate]) -> int:
        rates = list(rates)
        for rate in rates:
            _check_consistent(rate)
        self._rates.extend(rates)
        return len(rates)

    def seed_all(self, rates: Iterable[PriceRate]) -> int:
        taken = {rate.list_id for rate in self._rates}
        fresh = [rate for rate in rates if rate.list_id not in taken]
        return self.save_all(fresh)

    def count(self) -> int:
        return len(self._rates)

    def fetch_candidates(
        self, brand_id: int, product_id: int, query_time: datetime
    ) -> List[PriceRate]:
        return [
            rate for rate in self._rates
            if rate.brand_id == brand_id
            and rate.product_id == product_id
            and is_valid_at(rate, query_time)
        ]


# Global rate store instance
price_repository = PriceRepository()
