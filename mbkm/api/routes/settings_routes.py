"""
Settings Routes (grade weights per study program)

GET /settings/bobot-nilai - Weights of a program (prodi_id) or the first configured one
POST /settings/bobot-nilai - Create or update the weights of a program
"""

from fastapi import APIRouter, Depends, Query
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy import text
from typing import Optional

from mbkm.db.postgres import get_db_session, fetch_one
from mbkm.core.auth import get_current_user, require_permission
from mbkm.core.logging import get_logger
from mbkm.schemas.schemas import BobotNilaiRequest

router = APIRouter(prefix="/settings", tags=["Settings"])
logger = get_logger(__name__)


@router.get("/bobot-nilai")
async def get_bobot_nilai(prodi_id: Optional[int] = Query(None), user: dict = Depends(get_current_user)):
    """Returns 404 with {"data": null} when nothing is configured."""
    with get_db_session() as db:
        if prodi_id is not None:
            row = fetch_one(db, "SELECT * FROM bobot_nilai WHERE id_program_studi = :pid", {"pid": prodi_id})
        else:
            row = fetch_one(db, "SELECT * FROM bobot_nilai WHERE id_program_studi IS NOT NULL ORDER BY id LIMIT 1")

    if row is None:
        return JSONResponse(status_code=404, content={"data": None})
    return {"data": row}


@router.post("/bobot-nilai")
async def save_bobot_nilai(body: BobotNilaiRequest, user: dict = Depends(require_permission("settings.manage"))):
    """Upsert the three weights of a program: 201 when created, 200 when updated."""
    params = body.model_dump()
    with get_db_session() as db:
        existing = fetch_one(
            db, "SELECT id FROM bobot_nilai WHERE id_program_studi = :id_program_studi", params
        )
        if existing:
            db.execute(
                text("""
                    UPDATE bobot_nilai
                    SET bobot_nilai_perusahaan = :bobot_nilai_perusahaan,
                        bobot_nilai_pembimbing = :bobot_nilai_pembimbing,
                        bobot_nilai_penguji = :bobot_nilai_penguji,
                        updated_at = CURRENT_TIMESTAMP
                    WHERE id_program_studi = :id_program_studi
                """),
                params
            )
            status_code = 200
        else:
            db.execute(
                text("""
                    INSERT INTO bobot_nilai (id_program_studi, bobot_nilai_perusahaan,
                        bobot_nilai_pembimbing, bobot_nilai_penguji)
                    VALUES (:id_program_studi, :bobot_nilai_perusahaan, :bobot_nilai_pembimbing, :bobot_nilai_penguji)
                """),
                params
            )
            status_code = 201
        row = fetch_one(db, "SELECT * FROM bobot_nilai WHERE id_program_studi = :id_program_studi", params)

    logger.info("Grade weights for program %s set by user %s", body.id_program_studi, user["user_id"])
    return JSONResponse(status_code=status_code, content=jsonable_encoder({"status": True, "data": row}))
