from __future__ import annotations

from pathlib import Path
from typing import Any

import duckdb

from gridflow.core.ids import now_utc
from gridflow.simulation.models import BatchSummary, GameCheck

_GAME_COLUMNS = (
    "seed",
    "player_score",
    "ai_score",
    "winner",
    "ok",
    "issue_count",
    "issues",
    "drive_count",
    "snap_count",
)


class BatchResultStore:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def connect(self) -> Any:
        return duckdb.connect(str(self.db_path))

    def initialize_schema(self) -> None:
        with self.connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS batch_runs (
                    batch_id VARCHAR PRIMARY KEY,
                    recorded_at VARCHAR,
                    engine VARCHAR,
                    total INTEGER,
                    passed INTEGER,
                    failed INTEGER,
                    avg_player DOUBLE,
                    avg_ai DOUBLE,
                    cancelled BOOLEAN
                );

                CREATE TABLE IF NOT EXISTS batch_games (
                    batch_id VARCHAR,
                    seed BIGINT,
                    player_score INTEGER,
                    ai_score INTEGER,
                    winner VARCHAR,
                    ok BOOLEAN,
                    issue_count INTEGER,
                    issues VARCHAR,
                    drive_count INTEGER,
                    snap_count INTEGER,
                    PRIMARY KEY(batch_id, seed)
                );
                """
            )

    def record_batch(
        self,
        batch_id: str,
        summary: BatchSummary,
        games: list[GameCheck] | None = None,
        *,
        engine: str = "chart",
    ) -> None:
        self.initialize_schema()
        rows = [(batch_id, *(g.to_row()[c] for c in _GAME_COLUMNS)) for g in (games if games is not None else summary.games)]
        with self.connect() as conn:
            conn.execute("DELETE FROM batch_games WHERE batch_id = ?", [batch_id])
            conn.execute("DELETE FROM batch_runs WHERE batch_id = ?", [batch_id])
            conn.execute(
                "INSERT INTO batch_runs VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    batch_id,
                    now_utc().isoformat(),
                    engine,
                    summary.total,
                    summary.passed,
                    summary.failed,
                    summary.avg_player,
                    summary.avg_ai,
                    summary.cancelled,
                ],
            )
            if rows:
                conn.executemany("INSERT INTO batch_games VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)", rows)

    def fetch_batch_summary(self, batch_id: str) -> dict[str, Any] | None:
        with self.connect() as conn:
            row = conn.execute(
                "SELECT batch_id, engine, total, passed, failed, avg_player, avg_ai, cancelled FROM batch_runs WHERE batch_id = ?",
                [batch_id],
            ).fetchone()
            if row is None:
                return None
            failures = conn.execute(
                "SELECT seed, issues FROM batch_games WHERE batch_id = ? AND NOT ok ORDER BY seed",
                [batch_id],
            ).fetchall()
        keys = ("batch_id", "engine", "total", "passed", "failed", "avg_player", "avg_ai", "cancelled")
        summary = dict(zip(keys, row))
        summary["failures"] = [{"seed": int(seed), "issues": issues.split("; ") if issues else []} for seed, issues in failures]
        return summary

    def fetch_games(self, batch_id: str) -> list[dict[str, Any]]:
        with self.connect() as conn:
            rows = conn.execute(
                f"SELECT {', '.join(_GAME_COLUMNS)} FROM batch_games WHERE batch_id = ? ORDER BY seed",
                [batch_id],
            ).fetchall()
        return [dict(zip(_GAME_COLUMNS, row)) for row in rows]
