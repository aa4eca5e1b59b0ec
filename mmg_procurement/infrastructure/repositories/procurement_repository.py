from __future__ import annotations

from typing import Any

from mmg_procurement.infrastructure.repositories.base import BaseRepository, utc_timestamp


class ProcurementRepository(BaseRepository):
    def create(
        self,
        db,
        *,
        indent_number: str,
        title: str,
        project_id: int | None,
        indentor_id: int | None,
        group_id: int,
        purchase_type: str,
        delivery_place: str,
        estimated_cost: float | None,
        status: str,
        indent_date: str,
        mmg_acceptance_date: str | None,
    ) -> int:
        now = utc_timestamp()
        cursor = db.execute(
            """
            INSERT INTO procurements (
                indent_number, title, project_id, indentor_id, group_id, purchase_type,
                delivery_place, estimated_cost, status, indent_date, mmg_acceptance_date,
                created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            RETURNING id
            """,
            (
                indent_number,
                title,
                project_id,
                indentor_id,
                group_id,
                purchase_type,
                delivery_place,
                estimated_cost,
                status,
                indent_date,
                mmg_acceptance_date,
                now,
                now,
            ),
        )
        return self.returned_id(cursor)

    def get_by_id(self, db, procurement_id: int) -> dict | None:
        row = db.execute(
            """
            SELECT *
            FROM procurements
            WHERE id = ?
            LIMIT 1
            """,
            (procurement_id,),
        ).fetchone()
        return self.row_to_dict(row)

    def get_for_update(self, db, procurement_id: int) -> dict | None:
        # SQLite serializes writers through BEGIN IMMEDIATE; postgres locks the row.
        lock_clause = " FOR UPDATE" if db.backend == "postgres" else ""
        row = db.execute(
            f"""
            SELECT *
            FROM procurements
            WHERE id = ?{lock_clause}
            """,
            (procurement_id,),
        ).fetchone()
        return self.row_to_dict(row)

    def get_by_indent_number(self, db, indent_number: str) -> dict | None:
        row = db.execute(
            "SELECT id, indent_number, status FROM procurements WHERE indent_number = ? LIMIT 1",
            (indent_number,),
        ).fetchone()
        return self.row_to_dict(row)

    def update_status(self, db, procurement_id: int, status: str, extra_fields: dict[str, Any] | None = None) -> None:
        fields = dict(extra_fields or {})
        fields["status"] = status
        self.update_fields(db, procurement_id, fields)

    def update_fields(self, db, procurement_id: int, fields: dict[str, Any]) -> None:
        if not fields:
            return
        updates = [f"{key} = ?" for key in fields.keys()]
        params = list(fields.values())
        params.extend([utc_timestamp(), procurement_id])
        db.execute(
            f"""
            UPDATE procurements
            SET {", ".join(updates)}, updated_at = ?
            WHERE id = ?
            """,
            tuple(params),
        )

    def list_summary(self, db, *, status: str | None = None, limit: int = 200) -> list[dict]:
        params: list[Any] = []
        where = ""
        if status:
            where = "WHERE status = ?"
            params.append(status)
        params.append(int(limit))
        rows = db.execute(
            f"""
            SELECT id, indent_number, title, project_id, indentor_id, group_id, purchase_type,
                   delivery_place, estimated_cost, status, sourcing_method, indent_date,
                   mmg_acceptance_date, created_at
            FROM procurements
            {where}
            ORDER BY created_at DESC, id DESC
            LIMIT ?
            """,
            tuple(params),
        ).fetchall()
        return self.rows_to_dicts(rows)

    def delete_by_id(self, db, procurement_id: int) -> None:
        db.execute("DELETE FROM procurements WHERE id = ?", (procurement_id,))
