"""DuckDB-backed rating store."""

from duelboard.database.duckdb_manager import DuckDBStorageManager, temp_storage
from duelboard.database.rating_store import RatingStore, normalize_voter_id
from duelboard.database.records import Submission, Vote

__all__ = [
    "DuckDBStorageManager",
    "RatingStore",
    "Submission",
    "Vote",
    "normalize_voter_id",
    "temp_storage",
]
