"""
User Routes

GET /users - List users with roles
POST /users - Create user (superadmin)
GET /users/{user_id} - User detail
PUT /users/{user_id} - Update user (superadmin)
DELETE /users/{user_id} - Delete user (superadmin)
GET /lecturers - Lecturers (filters: status, apply_job_id)
GET /students - Students (filter: status, with aliases)
"""

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy import text
from typing import List, Optional

from mbkm.db.postgres import get_db_session, fetch_one, fetch_all
from mbkm.db.queries import USER_COLUMNS, page_offset, user_roles, user_with_roles
from mbkm.core.auth import get_current_user, hash_password, require_permission
from mbkm.core.errors import NotFoundError, ValidationError
from mbkm.core.permissions import RoleId, ROLE_TITLES
from mbkm.schemas.schemas import UserCreate, UserUpdate

router = APIRouter(tags=["Users"])

# query value -> stored status
STUDENT_STATUS_ALIASES = {
    "Aktif": "Aktif",
    "Lulus": "Tidak Aktif",
    "Drop Out": "Drop Out / Dikeluarkan",
    "Mengundurkan Diri": "Mengundurkan Diri / Keluar",
    "Transfer": "Transfer",
}

LECTURER_STATUSES = {"Aktif", "Tidak Aktif"}


def _has_role_sql(role_id: RoleId) -> str:
    return f"""(u.role = '{ROLE_TITLES[role_id]}' OR EXISTS (
        SELECT 1 FROM role_user ru WHERE ru.user_id = u.id AND ru.role_id = {int(role_id)}
    ))"""


def _replace_roles(db, user_id: int, role_ids: List[int]) -> None:
    db.execute(text("DELETE FROM role_user WHERE user_id = :uid"), {"uid": user_id})
    for rid in dict.fromkeys(role_ids):
        if fetch_one(db, "SELECT id FROM roles WHERE id = :id", {"id": rid}) is None:
            raise ValidationError("Validation failed", errors={"roles": f"Role {rid} not found"})
        db.execute(text("INSERT INTO role_user (user_id, role_id) VALUES (:uid, :rid)"), {"uid": user_id, "rid": rid})


def _get_user(db, user_id: int) -> dict:
    user = user_with_roles(db, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def _paged_users(where: str, params: dict, page: int, per_page: int) -> tuple:
    with get_db_session() as db:
        count = db.execute(text(f"SELECT COUNT(*) FROM users u WHERE {where}"), params).scalar()
        rows = fetch_all(
            db, f"SELECT {USER_COLUMNS} FROM users u WHERE {where} ORDER BY u.id LIMIT :limit OFFSET :offset",
            {**params, "limit": per_page, "offset": page_offset(page, per_page)}
        )
        for row in rows:
            row["roles"] = user_roles(db, row["id"])
    return rows, count


# ============================================================
# USERS
# ============================================================

@router.get("/users")
async def list_users(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    user: dict = Depends(get_current_user),
):
    rows, count = _paged_users("1 = 1", {}, page, per_page)
    return {"data": rows, "count": count}


@router.post("/users", status_code=201)
async def create_user(body: UserCreate, user: dict = Depends(require_permission("user.manage"))):
    """Create a user. `roles` (role ids) wins over the `role` title when both are given."""
    with get_db_session() as db:
        existing = fetch_one(
            db, "SELECT email, username FROM users WHERE email = :email OR (username IS NOT NULL AND username = :username)",
            {"email": body.email, "username": body.username}
        )
        if existing:
            errors = {}
            if existing["email"] == body.email:
                errors["email"] = "Email already exists"
            if body.username and existing["username"] == body.username:
                errors["username"] = "Username already exists"
            raise ValidationError("Validation failed", errors=errors)

        result = db.execute(
            text("""
                INSERT INTO users (name, email, username, password, role, status, nim, program_study, id_program_studi)
                VALUES (:name, :email, :username, :password, :role, :status, :nim, :program_study, :id_program_studi)
                RETURNING id
            """),
            {
                "name": body.name, "email": body.email, "username": body.username,
                "password": hash_password(body.password), "role": body.role or "student",
                "status": body.status, "nim": body.nim, "program_study": body.program_study,
                "id_program_studi": body.id_program_studi,
            }
        )
        user_id = result.fetchone()[0]

        role_ids = list(body.roles)
        if not role_ids and body.role:
            role_ids = [int(rid) for rid, title in ROLE_TITLES.items() if title == body.role]
        if role_ids:
            _replace_roles(db, user_id, role_ids)

        data = _get_user(db, user_id)
    return {"data": data}


@router.get("/users/{user_id}")
async def get_user(user_id: int, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        return {"data": _get_user(db, user_id)}


@router.put("/users/{user_id}")
async def update_user(user_id: int, update: UserUpdate, user: dict = Depends(require_permission("user.manage"))):
    with get_db_session() as db:
        _get_user(db, user_id)

        values = update.model_dump(exclude_none=True)
        role_ids = values.pop("roles", None)
        if "password" in values:
            values["password"] = hash_password(values["password"])
        if "email" in values and fetch_one(
            db, "SELECT id FROM users WHERE email = :email AND id != :id", {"email": values["email"], "id": user_id}
        ):
            raise ValidationError("Validation failed", errors={"email": "Email already exists"})

        if values:
            sets = ", ".join(f"{field} = :{field}" for field in values)
            db.execute(
                text(f"UPDATE users SET {sets}, updated_at = CURRENT_TIMESTAMP WHERE id = :id"),
                {**values, "id": user_id}
            )
        if role_ids is not None:
            _replace_roles(db, user_id, role_ids)

        data = _get_user(db, user_id)
    return {"data": data}


@router.delete("/users/{user_id}", status_code=204)
async def delete_user(user_id: int, user: dict = Depends(require_permission("user.manage"))):
    with get_db_session() as db:
        _get_user(db, user_id)
        db.execute(text("DELETE FROM role_user WHERE user_id = :id"), {"id": user_id})
        db.execute(text("DELETE FROM apply_job_user WHERE user_id = :id"), {"id": user_id})
        db.execute(text("DELETE FROM users WHERE id = :id"), {"id": user_id})
    return Response(status_code=204)


# ============================================================
# LECTURERS / STUDENTS
# ============================================================

@router.get("/lecturers")
async def list_lecturers(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    status: Optional[str] = Query(None),
    apply_job_id: Optional[int] = Query(None),
    user: dict = Depends(get_current_user),
):
    """
    Lecturers (dosen). With `apply_job_id`, each entry says whether it is the
    supervising lecturer of that application (`lecturer_can_approve`).
    """
    where, params = _has_role_sql(RoleId.DOSEN), {}
    if status in LECTURER_STATUSES:
        where += " AND u.status = :status"
        params["status"] = status

    rows, count = _paged_users(where, params, page, per_page)

    responsible_id = None
    if apply_job_id is not None:
        with get_db_session() as db:
            apply_job = fetch_one(
                db, "SELECT responsible_lecturer_id FROM apply_jobs WHERE id = :id", {"id": apply_job_id}
            )
        if apply_job:
            responsible_id = apply_job["responsible_lecturer_id"]

    for row in rows:
        row["lecturer_can_approve"] = responsible_id is not None and row["id"] == responsible_id
    return {"data": rows, "count": count}


@router.get("/students")
async def list_students(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    status: Optional[str] = Query(None),
    user: dict = Depends(get_current_user),
):
    """Students. `status` accepts Aktif, Lulus, Drop Out, Mengundurkan Diri or Transfer."""
    where, params = _has_role_sql(RoleId.STUDENT), {}
    if status in STUDENT_STATUS_ALIASES:
        where += " AND u.status = :status"
        params["status"] = STUDENT_STATUS_ALIASES[status]

    rows, count = _paged_users(where, params, page, per_page)
    return {"data": rows, "count": count}
