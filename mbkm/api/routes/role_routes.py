"""
Role & Permission Routes

GET|POST /permissions, PUT|DELETE /permissions/{id}
GET|POST /roles, GET|PUT|DELETE /roles/{id}
POST /roles/assign - Give a user exactly one role

Writes need the role.manage permission (superadmin).
"""

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy import text
from typing import List

from mbkm.db.postgres import get_db_session, fetch_one, fetch_all
from mbkm.db.queries import page_offset, user_with_roles
from mbkm.core.auth import get_current_user, require_permission
from mbkm.core.errors import NotFoundError, ValidationError
from mbkm.core.logging import get_logger
from mbkm.schemas.schemas import (
    PermissionRequest, RoleCreate, RoleUpdate, AssignRoleRequest
)

router = APIRouter(tags=["Roles"])
logger = get_logger(__name__)


# ============================================================
# PERMISSIONS
# ============================================================

def _get_permission(db, permission_id: int) -> dict:
    row = fetch_one(db, "SELECT * FROM permissions WHERE id = :id", {"id": permission_id})
    if not row:
        raise NotFoundError("Permission not found")
    return row


@router.get("/permissions")
async def list_permissions(user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        rows = fetch_all(db, "SELECT * FROM permissions ORDER BY id")
    return {"data": rows, "count": len(rows)}


@router.post("/permissions", status_code=201)
async def create_permission(body: PermissionRequest, user: dict = Depends(require_permission("role.manage"))):
    with get_db_session() as db:
        result = db.execute(text("INSERT INTO permissions (title) VALUES (:title) RETURNING id"), body.model_dump())
        return {"data": _get_permission(db, result.fetchone()[0])}


@router.put("/permissions/{permission_id}")
async def update_permission(
    permission_id: int, body: PermissionRequest,
    user: dict = Depends(require_permission("role.manage")),
):
    with get_db_session() as db:
        _get_permission(db, permission_id)
        db.execute(
            text("UPDATE permissions SET title = :title, updated_at = CURRENT_TIMESTAMP WHERE id = :id"),
            {"title": body.title, "id": permission_id}
        )
        return {"data": _get_permission(db, permission_id)}


@router.delete("/permissions/{permission_id}", status_code=204)
async def delete_permission(permission_id: int, user: dict = Depends(require_permission("role.manage"))):
    with get_db_session() as db:
        _get_permission(db, permission_id)
        db.execute(text("DELETE FROM permission_role WHERE permission_id = :id"), {"id": permission_id})
        db.execute(text("DELETE FROM permissions WHERE id = :id"), {"id": permission_id})
    return Response(status_code=204)


# ============================================================
# ROLES
# ============================================================

def _get_role(db, role_id: int) -> dict:
    role = fetch_one(db, "SELECT * FROM roles WHERE id = :id", {"id": role_id})
    if not role:
        raise NotFoundError("Role not found")
    role["permissions"] = fetch_all(db, """
        SELECT p.id, p.title FROM permissions p
        JOIN permission_role pr ON pr.permission_id = p.id
        WHERE pr.role_id = :rid ORDER BY p.id
    """, {"rid": role_id})
    return role


def _replace_permissions(db, role_id: int, permission_ids: List[int]) -> None:
    db.execute(text("DELETE FROM permission_role WHERE role_id = :rid"), {"rid": role_id})
    for pid in dict.fromkeys(permission_ids):
        if fetch_one(db, "SELECT id FROM permissions WHERE id = :id", {"id": pid}) is None:
            raise ValidationError("Validation failed", errors={"permissions": f"Permission {pid} not found"})
        db.execute(
            text("INSERT INTO permission_role (role_id, permission_id) VALUES (:rid, :pid)"),
            {"rid": role_id, "pid": pid}
        )


@router.get("/roles")
async def list_roles(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    user: dict = Depends(get_current_user),
):
    with get_db_session() as db:
        count = db.execute(text("SELECT COUNT(*) FROM roles")).scalar()
        ids = db.execute(
            text("SELECT id FROM roles ORDER BY id LIMIT :limit OFFSET :offset"),
            {"limit": per_page, "offset": page_offset(page, per_page)}
        ).scalars().all()
        rows = [_get_role(db, rid) for rid in ids]
    return {"data": rows, "count": count}


@router.post("/roles", status_code=201)
async def create_role(body: RoleCreate, user: dict = Depends(require_permission("role.manage"))):
    with get_db_session() as db:
        result = db.execute(text("INSERT INTO roles (title) VALUES (:title) RETURNING id"), {"title": body.title})
        role_id = result.fetchone()[0]
        if body.permissions:
            _replace_permissions(db, role_id, body.permissions)
        return {"data": _get_role(db, role_id)}


@router.get("/roles/{role_id}")
async def get_role(role_id: int, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        return {"data": _get_role(db, role_id)}


@router.put("/roles/{role_id}")
async def update_role(role_id: int, body: RoleUpdate, user: dict = Depends(require_permission("role.manage"))):
    with get_db_session() as db:
        _get_role(db, role_id)
        if body.title is not None:
            db.execute(
                text("UPDATE roles SET title = :title, updated_at = CURRENT_TIMESTAMP WHERE id = :id"),
                {"title": body.title, "id": role_id}
            )
        if body.permissions is not None:
            _replace_permissions(db, role_id, body.permissions)
        return {"data": _get_role(db, role_id)}


@router.delete("/roles/{role_id}", status_code=204)
async def delete_role(role_id: int, user: dict = Depends(require_permission("role.manage"))):
    with get_db_session() as db:
        _get_role(db, role_id)
        db.execute(text("DELETE FROM permission_role WHERE role_id = :id"), {"id": role_id})
        db.execute(text("DELETE FROM role_user WHERE role_id = :id"), {"id": role_id})
        db.execute(text("DELETE FROM roles WHERE id = :id"), {"id": role_id})
    return Response(status_code=204)


@router.post("/roles/assign")
async def assign_role(body: AssignRoleRequest, user: dict = Depends(require_permission("role.manage"))):
    """Replace a user's roles with the given one and sync the user's role title."""
    with get_db_session() as db:
        if not fetch_one(db, "SELECT id FROM users WHERE id = :id", {"id": body.user_id}):
            raise NotFoundError("User not found")
        role = fetch_one(db, "SELECT id, title FROM roles WHERE id = :id", {"id": body.role_id})
        if not role:
            raise NotFoundError("Role not found")

        db.execute(text("DELETE FROM role_user WHERE user_id = :uid"), {"uid": body.user_id})
        db.execute(
            text("INSERT INTO role_user (user_id, role_id) VALUES (:uid, :rid)"),
            {"uid": body.user_id, "rid": body.role_id}
        )
        db.execute(
            text("UPDATE users SET role = :title, updated_at = CURRENT_TIMESTAMP WHERE id = :uid"),
            {"title": role["title"], "uid": body.user_id}
        )
        data = user_with_roles(db, body.user_id)

    logger.info("User %s assigned role %s by user %s", body.user_id, role["title"], user["user_id"])
    return {"status": True, "data": data}
