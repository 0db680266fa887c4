"""
Konversi Nilai Routes (internship grade converted into course grades)

GET /konversi-nilai - List conversions (filter: apply_job_id)
POST /konversi-nilai - Create or update the conversion for (apply_job_id, matkul_id)
GET /konversi-nilai/{konversi_id} - Conversion detail
PUT /konversi-nilai/{konversi_id} - Update grade / score
DELETE /konversi-nilai/{konversi_id} - Delete conversion
"""

from fastapi import APIRouter, Depends, Query, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy import text
from typing import Optional

from mbkm.db.postgres import get_db_session, fetch_one, fetch_all
from mbkm.core.auth import get_current_user, require_permission
from mbkm.core.errors import NotFoundError
from mbkm.schemas.schemas import KonversiCreate, KonversiUpdate

router = APIRouter(prefix="/konversi-nilai", tags=["Konversi Nilai"])

KONVERSI_SELECT = """
    SELECT k.*, m.kode_matkul, m.nama_matkul, m.sks
    FROM konversi_nilai k LEFT JOIN mata_kuliah m ON m.id = k.matkul_id
"""


def _get_konversi(db, konversi_id: int) -> dict:
    row = fetch_one(db, KONVERSI_SELECT + " WHERE k.id = :id", {"id": konversi_id})
    if not row:
        raise NotFoundError("Konversi nilai not found")
    return row


@router.get("")
async def list_konversi(apply_job_id: Optional[int] = Query(None), user: dict = Depends(get_current_user)):
    where, params = "", {}
    if apply_job_id is not None:
        where, params = " WHERE k.apply_job_id = :aid", {"aid": apply_job_id}
    with get_db_session() as db:
        rows = fetch_all(db, KONVERSI_SELECT + where + " ORDER BY k.id", params)
    return {"data": rows, "count": len(rows)}


@router.post("", status_code=201)
async def upsert_konversi(body: KonversiCreate, user: dict = Depends(require_permission("konversi.manage"))):
    """Create the conversion, or update grade and score when the pair already exists (200)."""
    with get_db_session() as db:
        if not fetch_one(db, "SELECT id FROM apply_jobs WHERE id = :id", {"id": body.apply_job_id}):
            raise NotFoundError("Apply job not found")
        if not fetch_one(db, "SELECT id FROM mata_kuliah WHERE id = :id", {"id": body.matkul_id}):
            raise NotFoundError("Mata kuliah not found")

        existing = fetch_one(
            db, "SELECT id FROM konversi_nilai WHERE apply_job_id = :aid AND matkul_id = :mid",
            {"aid": body.apply_job_id, "mid": body.matkul_id}
        )
        if existing:
            db.execute(
                text("""
                    UPDATE konversi_nilai SET grade = :grade, score = :score, updated_at = CURRENT_TIMESTAMP
                    WHERE id = :id
                """),
                {"grade": body.grade, "score": body.score, "id": existing["id"]}
            )
            data = _get_konversi(db, existing["id"])
            return JSONResponse(status_code=200, content=jsonable_encoder({"status": True, "data": data}))

        result = db.execute(
            text("""
                INSERT INTO konversi_nilai (apply_job_id, matkul_id, grade, score)
                VALUES (:apply_job_id, :matkul_id, :grade, :score) RETURNING id
            """),
            body.model_dump()
        )
        data = _get_konversi(db, result.fetchone()[0])

    return {"status": True, "data": data}


@router.get("/{konversi_id}")
async def get_konversi(konversi_id: int, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        return {"data": _get_konversi(db, konversi_id)}


@router.put("/{konversi_id}")
async def update_konversi(
    konversi_id: int, update: KonversiUpdate,
    user: dict = Depends(require_permission("konversi.manage")),
):
    with get_db_session() as db:
        _get_konversi(db, konversi_id)
        db.execute(
            text("""
                UPDATE konversi_nilai SET grade = :grade, score = :score, updated_at = CURRENT_TIMESTAMP
                WHERE id = :id
            """),
            {"grade": update.grade, "score": update.score, "id": konversi_id}
        )
        return {"data": _get_konversi(db, konversi_id)}


@router.delete("/{konversi_id}", status_code=204)
async def delete_konversi(konversi_id: int, user: dict = Depends(require_permission("konversi.manage"))):
    with get_db_session() as db:
        result = db.execute(text("DELETE FROM konversi_nilai WHERE id = :id"), {"id": konversi_id})
        if result.rowcount == 0:
            raise NotFoundError("Konversi nilai not found")
    return Response(status_code=204)
