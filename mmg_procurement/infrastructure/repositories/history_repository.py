from __future__ import annotations

from mmg_procurement.infrastructure.repositories.base import BaseRepository, utc_timestamp


class HistoryRepository(BaseRepository):
    """Write-once status ledger. Entries are only ever appended."""

    def append(
        self,
        db,
        *,
        procurement_id: int,
        old_status: str | None,
        new_status: str,
        remarks: str | None,
        status_date: str | None = None,
        changed_by: int | None = None,
    ) -> int:
        recorded_at = utc_timestamp()
        cursor = db.execute(
            """
            INSERT INTO procurement_history (
                procurement_id, old_status, new_status, remarks, status_date, changed_by, recorded_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?)
            RETURNING id
            """,
            (procurement_id, old_status, new_status, remarks, status_date or recorded_at, changed_by, recorded_at),
        )
        return self.returned_id(cursor)

    def list_by_procurement(self, db, procurement_id: int) -> list[dict]:
        rows = db.execute(
            """
            SELECT id, procurement_id, old_status, new_status, remarks, status_date, changed_by, recorded_at
            FROM procurement_history
            WHERE procurement_id = ?
            ORDER BY recorded_at ASC, id ASC
            """,
            (procurement_id,),
        ).fetchall()
        return self.rows_to_dicts(rows)
