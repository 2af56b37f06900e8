"""
storage/opportunity_store.py - SQLite persistence for opportunity records.

Tables:
- direct_opportunities: one row per venue comparison
- triangular_opportunities: one row per (triplet, venue)

Reads are most-recent-first (timestamp, then insertion id).
Failures surface as StoreError; callers decide whether to swallow them.
"""

import sqlite3
import threading
from pathlib import Path
from typing import Any, Dict, List, Union

from core.constants import ErrorCode
from core.exceptions import StoreError
from core.logging import get_logger
from core.models import DirectOpportunity, TriangularOpportunity

logger = get_logger(__name__)

DIRECT_COLUMNS = [
    "token_pair",
    "venue_a",
    "venue_b",
    "price_a",
    "price_b",
    "price_difference",
    "trade_amount",
    "potential_profit",
    "gas_cost",
    "net_profit",
    "profit_percentage",
    "is_profitable",
    "timestamp",
]

TRIANGULAR_COLUMNS = [
    "token_a",
    "token_b",
    "token_c",
    "venue",
    "rate_ab",
    "rate_bc",
    "rate_ca",
    "expected_return",
    "trade_amount",
    "potential_profit",
    "gas_cost",
    "net_profit",
    "is_profitable",
    "timestamp",
]

SCHEMA = """
CREATE TABLE IF NOT EXISTS direct_opportunities (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    token_pair TEXT NOT NULL,
    venue_a TEXT NOT NULL,
    venue_b TEXT NOT NULL,
    price_a REAL NOT NULL,
    price_b REAL NOT NULL,
    price_difference REAL NOT NULL,
    trade_amount REAL NOT NULL,
    potential_profit REAL NOT NULL,
    gas_cost REAL NOT NULL,
    net_profit REAL NOT NULL,
    profit_percentage REAL NOT NULL,
    is_profitable INTEGER NOT NULL,
    timestamp TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS triangular_opportunities (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    token_a TEXT NOT NULL,
    token_b TEXT NOT NULL,
    token_c TEXT NOT NULL,
    venue TEXT NOT NULL,
    rate_ab REAL NOT NULL,
    rate_bc REAL NOT NULL,
    rate_ca REAL NOT NULL,
    expected_return REAL NOT NULL,
    trade_amount REAL NOT NULL,
    potential_profit REAL NOT NULL,
    gas_cost REAL NOT NULL,
    net_profit REAL NOT NULL,
    is_profitable INTEGER NOT NULL,
    timestamp TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_direct_ts ON direct_opportunities (timestamp);
CREATE INDEX IF NOT EXISTS idx_triangular_ts ON triangular_opportunities (timestamp);
"""

Opportunity = Union[DirectOpportunity, TriangularOpportunity]


class OpportunityStore:
    """
    Opportunity record store.

    Usage:
        store = OpportunityStore(Path("data/opportunities.db"))
        row_id = store.record_direct(opportunity)
        latest = store.recent_direct(limit=10, only_profitable=True)

    Pass ":memory:" for an in-process database (tests).
    """

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(SCHEMA)
        self._conn.commit()

        logger.info(
            "Opportunity store ready",
            extra={"context": {"db_path": self.db_path}},
        )

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def record_direct(self, opportunity: DirectOpportunity) -> int:
        return self._insert("direct_opportunities", DIRECT_COLUMNS, opportunity)

    def record_triangular(self, opportunity: TriangularOpportunity) -> int:
        return self._insert("triangular_opportunities", TRIANGULAR_COLUMNS, opportunity)

    def _insert(self, table: str, columns: List[str], opportunity: Opportunity) -> int:
        row = opportunity.to_dict()
        values = [int(row[c]) if c == "is_profitable" else row[c] for c in columns]
        placeholders = ", ".join("?" for _ in columns)
        sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"

        try:
            with self._lock:
                cursor = self._conn.execute(sql, values)
                self._conn.commit()
        except sqlite3.Error as e:
            raise StoreError(
                f"Failed to insert into {table}: {e}",
                code=ErrorCode.STORE_WRITE_FAILED,
                details={"table": table},
            ) from e

        return cursor.lastrowid

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def recent_direct(self, limit: int = 100, only_profitable: bool = False) -> List[DirectOpportunity]:
        rows = self._select("direct_opportunities", DIRECT_COLUMNS, limit, only_profitable)
        return [DirectOpportunity.from_dict(row) for row in rows]

    def recent_triangular(
        self,
        limit: int = 100,
        only_profitable: bool = False,
    ) -> List[TriangularOpportunity]:
        rows = self._select("triangular_opportunities", TRIANGULAR_COLUMNS, limit, only_profitable)
        return [TriangularOpportunity.from_dict(row) for row in rows]

    def _select(
        self,
        table: str,
        columns: List[str],
        limit: int,
        only_profitable: bool,
    ) -> List[Dict[str, Any]]:
        where = "WHERE is_profitable = 1" if only_profitable else ""
        sql = (
            f"SELECT {', '.join(columns)} FROM {table} {where} "
            f"ORDER BY timestamp DESC, id DESC LIMIT ?"
        )
        try:
            with self._lock:
                rows = self._conn.execute(sql, (limit,)).fetchall()
        except sqlite3.Error as e:
            raise StoreError(
                f"Failed to read {table}: {e}",
                code=ErrorCode.STORE_READ_FAILED,
                details={"table": table},
            ) from e
        return [dict(row) for row in rows]

    def stats(self, limit: int = 1000) -> Dict[str, Any]:
        """
        Summary over the most recent direct opportunities.

        Returns:
            total, profitable, profitability_rate (%), average_profit over
            profitable records, last_scan (ISO timestamp or None)
        """
        total = self.recent_direct(limit=limit)
        profitable = [op for op in total if op.is_profitable]

        return {
            "total_opportunities": len(total),
            "profitable_opportunities": len(profitable),
            "profitability_rate": round(len(profitable) / len(total) * 100, 2) if total else 0.0,
            "average_profit": (
                round(sum(op.net_profit for op in profitable) / len(profitable), 2)
                if profitable else 0.0
            ),
            "last_scan": total[0].timestamp.isoformat() if total else None,
        }

    def close(self) -> None:
        with self._lock:
            self._conn.close()
        logger.info("Opportunity store closed")
