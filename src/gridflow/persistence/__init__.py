from .duckdb_store import BatchResultStore

__all__ = ["BatchResultStore"]
