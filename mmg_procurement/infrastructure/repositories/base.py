from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S.%f")


class BaseRepository:
    @staticmethod
    def row_to_dict(row: Any) -> dict | None:
        return dict(row) if row else None

    @staticmethod
    def rows_to_dicts(rows: Iterable[Any]) -> list[dict]:
        return [dict(row) for row in rows]

    @staticmethod
    def returned_id(cursor) -> int:
        # Drain the cursor so the INSERT statement is finished before COMMIT.
        row = cursor.fetchall()[0]
        return int(row["id"] if isinstance(row, dict) else row[0])

    @staticmethod
    def count_from(row: Any, column: str = "total") -> int:
        if not row:
            return 0
        return int(row[column] if isinstance(row, dict) else row[0])
