from __future__ import annotations

from pathlib import Path
from typing import Any

import duckdb

# table -> ordering used for stable export files
EXPORT_TABLES: dict[str, str] = {
    "batch_runs": "batch_id",
    "batch_games": "batch_id, seed",
}


class ExportService:
    def __init__(self, analytics_db: Path) -> None:
        self.analytics_db = analytics_db

    def export_batch_results(self, output_dir: Path, batch_id: str | None = None) -> list[Path]:
        """Write CSV and Parquet copies of each batch table, optionally for one batch only."""
        output_dir.mkdir(parents=True, exist_ok=True)
        suffix = f"_{batch_id}" if batch_id else ""
        outputs: list[Path] = []
        with duckdb.connect(str(self.analytics_db)) as conn:
            for table, order_by in EXPORT_TABLES.items():
                query = f"SELECT * FROM {table}"
                if batch_id:
                    query += f" WHERE batch_id = {_sql_literal(batch_id)}"
                query += f" ORDER BY {order_by}"
                outputs.extend(self._copy(conn, query, output_dir / f"{table}{suffix}"))
        return outputs

    def _copy(self, conn: Any, query: str, stem: Path) -> list[Path]:
        csv_path = stem.with_suffix(".csv")
        parquet_path = stem.with_suffix(".parquet")
        conn.execute(f"COPY ({query}) TO '{csv_path.as_posix()}' (HEADER, DELIMITER ',')")
        conn.execute(f"COPY ({query}) TO '{parquet_path.as_posix()}' (FORMAT PARQUET)")
        return [csv_path, parquet_path]


def _sql_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"
