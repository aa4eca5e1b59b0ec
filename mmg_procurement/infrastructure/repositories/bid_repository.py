from __future__ import annotations

from mmg_procurement.infrastructure.repositories.base import BaseRepository, utc_timestamp


class BidRepository(BaseRepository):
    def create(
        self,
        db,
        *,
        procurement_id: int,
        vendor_name: str,
        bid_amount: float,
        number_of_bids: int,
        notes: str | None,
    ) -> int:
        cursor = db.execute(
            """
            INSERT INTO procurement_bids (procurement_id, vendor_name, bid_amount, number_of_bids, notes, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            RETURNING id
            """,
            (procurement_id, vendor_name, bid_amount, number_of_bids, notes, utc_timestamp()),
        )
        return self.returned_id(cursor)

    def get_for_procurement(self, db, procurement_id: int, bid_id: int) -> dict | None:
        row = db.execute(
            """
            SELECT *
            FROM procurement_bids
            WHERE id = ? AND procurement_id = ?
            LIMIT 1
            """,
            (bid_id, procurement_id),
        ).fetchone()
        return self.row_to_dict(row)

    def latest_for_procurement(self, db, procurement_id: int) -> dict | None:
        row = db.execute(
            """
            SELECT *
            FROM procurement_bids
            WHERE procurement_id = ?
            ORDER BY created_at DESC, id DESC
            LIMIT 1
            """,
            (procurement_id,),
        ).fetchone()
        return self.row_to_dict(row)

    def count_for_procurement(self, db, procurement_id: int) -> int:
        row = db.execute(
            "SELECT COUNT(*) AS total FROM procurement_bids WHERE procurement_id = ?",
            (procurement_id,),
        ).fetchone()
        return self.count_from(row)

    def list_by_procurement(self, db, procurement_id: int) -> list[dict]:
        rows = db.execute(
            """
            SELECT *
            FROM procurement_bids
            WHERE procurement_id = ?
            ORDER BY created_at ASC, id ASC
            """,
            (procurement_id,),
        ).fetchall()
        return self.rows_to_dicts(rows)
