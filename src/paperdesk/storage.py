from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Mapping
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import UTC, datetime
from pathlib import Path
from threading import Lock
from typing import Any, Protocol

from paperdesk.execution.models import DEFAULT_CASH_BALANCE, PortfolioState, Trade

logger = logging.getLogger(__name__)

PORTFOLIO_FIELDS = frozenset({"cash_balance", "holdings", "trade_history", "realized_pl"})


class PortfolioStore(Protocol):
    def read(self, user_id: str) -> PortfolioState: ...

    def write(self, user_id: str, update: Mapping[str, Any]) -> None: ...


def default_payload(cash_balance: float = DEFAULT_CASH_BALANCE) -> dict[str, Any]:
    return PortfolioState.default(cash_balance).to_dict()


def _merge(existing: Mapping[str, Any], update: Mapping[str, Any]) -> dict[str, Any]:
    unknown = set(update).difference(PORTFOLIO_FIELDS)
    if unknown:
        raise ValueError(f"Unknown portfolio fields: {sorted(unknown)}")
    merged = dict(existing)
    merged.update(update)
    return merged


class InMemoryPortfolioStore:
    def __init__(self, initial_cash: float = DEFAULT_CASH_BALANCE) -> None:
        self.initial_cash = initial_cash
        self._payloads: dict[str, dict[str, Any]] = {}
        self._lock = Lock()

    def read(self, user_id: str) -> PortfolioState:
        with self._lock:
            payload = self._payloads.get(user_id)
        if payload is None:
            return PortfolioState.default(self.initial_cash)
        return PortfolioState.from_dict(payload)

    def write(self, user_id: str, update: Mapping[str, Any]) -> None:
        with self._lock:
            existing = self._payloads.get(user_id) or default_payload(self.initial_cash)
            self._payloads[user_id] = _merge(existing, update)


class SqlitePortfolioStore:
    """One JSON document per user, merged on every partial write."""

    def __init__(self, database_url: str, initial_cash: float = DEFAULT_CASH_BALANCE) -> None:
        if not database_url:
            raise ValueError("database_url must be non-empty")
        if not database_url.startswith("sqlite:///"):
            raise ValueError("database_url must start with sqlite:///")
        self.database_url = database_url
        self.initial_cash = initial_cash
        self._sqlite_path = database_url.removeprefix("sqlite:///")

    def init_schema(self) -> None:
        with self._connect() as conn:
            self._run_schema_migrations(conn)
            conn.commit()

    def read(self, user_id: str) -> PortfolioState:
        payload = self._load(user_id)
        if payload is None:
            return PortfolioState.default(self.initial_cash)
        return PortfolioState.from_dict(payload)

    def write(self, user_id: str, update: Mapping[str, Any]) -> None:
        if not user_id.strip():
            raise ValueError("user_id must be non-empty")
        with self._connect() as conn:
            self._run_schema_migrations(conn)
            cur = conn.cursor()
            cur.execute("SELECT payload_json FROM portfolios WHERE user_id = ?", (user_id,))
            row = cur.fetchone()
            existing = json.loads(row[0]) if row else default_payload(self.initial_cash)
            merged = _merge(existing, update)
            cur.execute(
                """
                INSERT INTO portfolios (user_id, updated_at, payload_json)
                VALUES (?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    updated_at = excluded.updated_at,
                    payload_json = excluded.payload_json
                """,
                (user_id, datetime.now(UTC).isoformat(), json.dumps(merged, sort_keys=True)),
            )
            conn.commit()

    def _load(self, user_id: str) -> dict[str, Any] | None:
        with self._connect() as conn:
            self._run_schema_migrations(conn)
            cur = conn.cursor()
            cur.execute("SELECT payload_json FROM portfolios WHERE user_id = ?", (user_id,))
            row = cur.fetchone()
        if row is None:
            return None
        loaded = json.loads(row[0])
        if not isinstance(loaded, dict):
            raise ValueError("Stored portfolio must be a JSON object")
        return loaded

    def _connect(self) -> sqlite3.Connection:
        path = Path(self._sqlite_path)
        if str(path) != ":memory:":
            path.parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(str(path))

    def _run_schema_migrations(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS portfolios (
                user_id TEXT PRIMARY KEY,
                updated_at TEXT NOT NULL,
                payload_json TEXT NOT NULL
            )
            """
        )


class PortfolioSync:
    """Ledger listener that persists each new state without blocking the trade.

    Writes run in order on a single worker thread; a failed write is logged and
    the next successful one carries the full state again.
    """

    def __init__(self, store: PortfolioStore, user_id: str) -> None:
        self.store = store
        self.user_id = user_id
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="portfolio-sync")
        self._pending: set[Future[None]] = set()
        self._lock = Lock()

    def __call__(self, state: PortfolioState, trade: Trade) -> None:
        future = self._executor.submit(self.store.write, self.user_id, state.to_dict())
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._on_done)

    def flush(self, timeout: float | None = None) -> None:
        with self._lock:
            pending = set(self._pending)
        wait(pending, timeout=timeout)

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def _on_done(self, future: Future[None]) -> None:
        with self._lock:
            self._pending.discard(future)
        exc = future.exception()
        if exc is not None:
            logger.error("Failed to persist portfolio for %s", self.user_id, exc_info=exc)
