"""
Company Routes (job-provider company profiles)

GET /companies - List companies
GET /companies/{company_id} - Company detail
POST /companies - Create company profile owned by the caller
PUT /companies/{company_id} - Update company (owner or staff)
DELETE /companies/{company_id} - Delete company (owner or staff)
"""

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy import text

from mbkm.db.postgres import get_db_session, fetch_one, fetch_all
from mbkm.db.queries import page_offset
from mbkm.core.auth import get_current_user
from mbkm.core.errors import NotFoundError, PermissionDeniedError
from mbkm.core.permissions import is_staff
from mbkm.schemas.schemas import CompanyCreate, CompanyUpdate

router = APIRouter(prefix="/companies", tags=["Companies"])

COMPANY_FIELDS = [
    "company_name", "business_fields", "company_size", "company_website",
    "company_profile_description", "company_phone_number", "company_address",
]

COMPANY_SELECT = """
    SELECT c.*, u.name AS user_name, u.email AS user_email
    FROM companies c LEFT JOIN users u ON u.id = c.user_id
"""


def _get_company(db, company_id: int) -> dict:
    company = fetch_one(db, COMPANY_SELECT + " WHERE c.id = :id", {"id": company_id})
    if not company:
        raise NotFoundError("Company not found")
    return company


def _check_owner(company: dict, user: dict) -> None:
    if company["user_id"] != user["user_id"] and not is_staff(user["role_ids"]):
        raise PermissionDeniedError("Only the company owner can change this company")


@router.get("")
async def list_companies(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    user: dict = Depends(get_current_user),
):
    with get_db_session() as db:
        count = db.execute(text("SELECT COUNT(*) FROM companies")).scalar()
        rows = fetch_all(
            db, COMPANY_SELECT + " ORDER BY c.created_at DESC, c.id DESC LIMIT :limit OFFSET :offset",
            {"limit": per_page, "offset": page_offset(page, per_page)}
        )
    return {"data": rows, "count": count}


@router.get("/{company_id}")
async def get_company(company_id: int, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        return {"data": _get_company(db, company_id)}


@router.post("", status_code=201)
async def create_company(company: CompanyCreate, user: dict = Depends(get_current_user)):
    """Create a company profile owned by the current user."""
    with get_db_session() as db:
        result = db.execute(
            text(f"""
                INSERT INTO companies ({', '.join(COMPANY_FIELDS)}, user_id, created_by_id)
                VALUES ({', '.join(':' + f for f in COMPANY_FIELDS)}, :uid, :uid)
                RETURNING id
            """),
            {**company.model_dump(), "uid": user["user_id"]}
        )
        company_id = result.fetchone()[0]
        data = _get_company(db, company_id)
    return {"data": data}


@router.put("/{company_id}")
async def update_company(company_id: int, update: CompanyUpdate, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        _check_owner(_get_company(db, company_id), user)

        updates = []
        params = {"id": company_id}
        for field, value in update.model_dump(exclude_none=True).items():
            updates.append(f"{field} = :{field}")
            params[field] = value

        if updates:
            db.execute(
                text(f"UPDATE companies SET {', '.join(updates)}, updated_at = CURRENT_TIMESTAMP WHERE id = :id"),
                params
            )
        data = _get_company(db, company_id)
    return {"data": data}


@router.delete("/{company_id}", status_code=204)
async def delete_company(company_id: int, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        _check_owner(_get_company(db, company_id), user)
        db.execute(text("UPDATE jobs SET company_id = NULL WHERE company_id = :id"), {"id": company_id})
        db.execute(text("DELETE FROM companies WHERE id = :id"), {"id": company_id})
    return Response(status_code=204)
