"""
Master Data Routes

GET|POST /fakultas - Faculties
GET|POST /program-studi - Study programs (filter: fakultas_id)
GET|POST /matkul - Courses (filter: prodi_id)
GET|POST /perusahaans, GET|PUT|DELETE /perusahaans/{id} - Partner company master data

Reads need a login; writes need the master.manage permission.
"""

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy import text
from typing import Optional

from mbkm.db.postgres import get_db_session, fetch_one, fetch_all
from mbkm.db.queries import page_offset
from mbkm.core.auth import get_current_user, require_permission
from mbkm.core.errors import NotFoundError
from mbkm.schemas.schemas import (
    FakultasCreate, ProgramStudiCreate, MataKuliahCreate, PerusahaanCreate, PerusahaanUpdate
)

router = APIRouter(tags=["Master Data"])


def _paged(db, table_sql: str, select_sql: str, where: list, params: dict, page: int, per_page: int) -> dict:
    clause = " WHERE " + " AND ".join(where) if where else ""
    count = db.execute(text(f"SELECT COUNT(*) FROM {table_sql}{clause}"), params).scalar()
    rows = fetch_all(
        db, f"{select_sql}{clause} ORDER BY 1 LIMIT :limit OFFSET :offset",
        {**params, "limit": per_page, "offset": page_offset(page, per_page)}
    )
    return {"data": rows, "count": count}


def _insert(db, table: str, values: dict) -> dict:
    columns = list(values)
    result = db.execute(
        text(f"""
            INSERT INTO {table} ({', '.join(columns)})
            VALUES ({', '.join(':' + c for c in columns)}) RETURNING id
        """),
        values
    )
    new_id = result.fetchone()[0]
    return fetch_one(db, f"SELECT * FROM {table} WHERE id = :id", {"id": new_id})


# ============================================================
# FAKULTAS
# ============================================================

@router.get("/fakultas")
async def list_fakultas(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    user: dict = Depends(get_current_user),
):
    with get_db_session() as db:
        return _paged(db, "fakultas f", "SELECT f.* FROM fakultas f", [], {}, page, per_page)


@router.post("/fakultas", status_code=201)
async def create_fakultas(body: FakultasCreate, user: dict = Depends(require_permission("master.manage"))):
    with get_db_session() as db:
        return {"data": _insert(db, "fakultas", body.model_dump())}


# ============================================================
# PROGRAM STUDI
# ============================================================

@router.get("/program-studi")
async def list_program_studi(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    fakultas_id: Optional[int] = Query(None),
    user: dict = Depends(get_current_user),
):
    where, params = [], {}
    if fakultas_id is not None:
        where.append("p.id_unit_parent = :fakultas_id")
        params["fakultas_id"] = fakultas_id
    with get_db_session() as db:
        return _paged(
            db, "program_studi p",
            "SELECT p.*, f.nama AS fakultas_nama FROM program_studi p LEFT JOIN fakultas f ON f.id = p.id_unit_parent",
            where, params, page, per_page
        )


@router.post("/program-studi", status_code=201)
async def create_program_studi(body: ProgramStudiCreate, user: dict = Depends(require_permission("master.manage"))):
    with get_db_session() as db:
        if body.id_unit_parent is not None and not fetch_one(
            db, "SELECT id FROM fakultas WHERE id = :id", {"id": body.id_unit_parent}
        ):
            raise NotFoundError("Fakultas not found")
        return {"data": _insert(db, "program_studi", body.model_dump())}


# ============================================================
# MATA KULIAH
# ============================================================

@router.get("/matkul")
async def list_matkul(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    prodi_id: Optional[int] = Query(None),
    user: dict = Depends(get_current_user),
):
    where, params = [], {}
    if prodi_id is not None:
        where.append("m.id_program_studi = :prodi_id")
        params["prodi_id"] = prodi_id
    with get_db_session() as db:
        return _paged(
            db, "mata_kuliah m",
            "SELECT m.*, p.nama AS program_studi_nama FROM mata_kuliah m LEFT JOIN program_studi p ON p.id = m.id_program_studi",
            where, params, page, per_page
        )


@router.post("/matkul", status_code=201)
async def create_matkul(body: MataKuliahCreate, user: dict = Depends(require_permission("master.manage"))):
    with get_db_session() as db:
        if body.id_program_studi is not None and not fetch_one(
            db, "SELECT id FROM program_studi WHERE id = :id", {"id": body.id_program_studi}
        ):
            raise NotFoundError("Program studi not found")
        return {"data": _insert(db, "mata_kuliah", body.model_dump())}


# ============================================================
# PERUSAHAAN
# ============================================================

def _get_perusahaan(db, perusahaan_id: int) -> dict:
    row = fetch_one(db, "SELECT * FROM perusahaans WHERE id = :id", {"id": perusahaan_id})
    if not row:
        raise NotFoundError("Perusahaan not found")
    return row


@router.get("/perusahaans")
async def list_perusahaan(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    user: dict = Depends(get_current_user),
):
    with get_db_session() as db:
        return _paged(db, "perusahaans p", "SELECT p.* FROM perusahaans p", [], {}, page, per_page)


@router.post("/perusahaans", status_code=201)
async def create_perusahaan(body: PerusahaanCreate, user: dict = Depends(require_permission("master.manage"))):
    with get_db_session() as db:
        return {"data": _insert(db, "perusahaans", body.model_dump())}


@router.get("/perusahaans/{perusahaan_id}")
async def get_perusahaan(perusahaan_id: int, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        return {"data": _get_perusahaan(db, perusahaan_id)}


@router.put("/perusahaans/{perusahaan_id}", status_code=202)
async def update_perusahaan(
    perusahaan_id: int, update: PerusahaanUpdate,
    user: dict = Depends(require_permission("master.manage")),
):
    with get_db_session() as db:
        _get_perusahaan(db, perusahaan_id)

        updates = []
        params = {"id": perusahaan_id}
        for field, value in update.model_dump(exclude_none=True).items():
            updates.append(f"{field} = :{field}")
            params[field] = value

        if updates:
            db.execute(
                text(f"UPDATE perusahaans SET {', '.join(updates)}, updated_at = CURRENT_TIMESTAMP WHERE id = :id"),
                params
            )
        return {"data": _get_perusahaan(db, perusahaan_id)}


@router.delete("/perusahaans/{perusahaan_id}", status_code=204)
async def delete_perusahaan(perusahaan_id: int, user: dict = Depends(require_permission("master.manage"))):
    with get_db_session() as db:
        _get_perusahaan(db, perusahaan_id)
        db.execute(text("DELETE FROM perusahaans WHERE id = :id"), {"id": perusahaan_id})
    return Response(status_code=204)
