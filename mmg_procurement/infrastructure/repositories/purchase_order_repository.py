from __future__ import annotations

from mmg_procurement.infrastructure.repositories.base import BaseRepository, utc_timestamp


class PurchaseOrderRepository(BaseRepository):
    def get_by_id(self, db, purchase_order_id: int) -> dict | None:
        row = db.execute(
            """
            SELECT *
            FROM purchase_orders
            WHERE id = ?
            LIMIT 1
            """,
            (purchase_order_id,),
        ).fetchone()
        return self.row_to_dict(row)

    def create(
        self,
        db,
        *,
        procurement_id: int,
        po_number: str,
        po_date: str,
        vendor_name: str,
        po_value: float,
        status: str,
    ) -> int:
        now = utc_timestamp()
        cursor = db.execute(
            """
            INSERT INTO purchase_orders (
                procurement_id, po_number, po_date, vendor_name, po_value, status, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            RETURNING id
            """,
            (procurement_id, po_number, po_date, vendor_name, po_value, status, now, now),
        )
        return self.returned_id(cursor)

    def update_status(
        self,
        db,
        purchase_order_id: int,
        *,
        status: str,
        status_update_date: str,
        payment_completion_date: str | None = None,
    ) -> None:
        if payment_completion_date is not None:
            db.execute(
                """
                UPDATE purchase_orders
                SET status = ?, status_update_date = ?, payment_completion_date = ?, updated_at = ?
                WHERE id = ?
                """,
                (status, status_update_date, payment_completion_date, utc_timestamp(), purchase_order_id),
            )
            return
        db.execute(
            """
            UPDATE purchase_orders
            SET status = ?, status_update_date = ?, updated_at = ?
            WHERE id = ?
            """,
            (status, status_update_date, utc_timestamp(), purchase_order_id),
        )

    def list_by_procurement(self, db, procurement_id: int) -> list[dict]:
        rows = db.execute(
            """
            SELECT *
            FROM purchase_orders
            WHERE procurement_id = ?
            ORDER BY po_date ASC, id ASC
            """,
            (procurement_id,),
        ).fetchall()
        return self.rows_to_dicts(rows)
