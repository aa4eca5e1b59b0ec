from __future__ import annotations

from mmg_procurement.infrastructure.repositories.base import BaseRepository, utc_timestamp


class ProcurementItemRepository(BaseRepository):
    def create(
        self,
        db,
        *,
        procurement_id: int,
        item_name: str,
        quantity: float,
        specifications: str | None,
    ) -> int:
        cursor = db.execute(
            """
            INSERT INTO procurement_items (procurement_id, item_name, quantity, specifications, created_at)
            VALUES (?, ?, ?, ?, ?)
            RETURNING id
            """,
            (procurement_id, item_name, quantity, specifications, utc_timestamp()),
        )
        return self.returned_id(cursor)

    def list_by_procurement(self, db, procurement_id: int) -> list[dict]:
        rows = db.execute(
            """
            SELECT id, procurement_id, item_name, quantity, specifications, created_at
            FROM procurement_items
            WHERE procurement_id = ?
            ORDER BY id ASC
            """,
            (procurement_id,),
        ).fetchall()
        return self.rows_to_dicts(rows)
