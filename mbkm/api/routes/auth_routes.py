"""
Authentication Routes

POST /register - Register new user (student, cdc, company/mitra)
POST /login - Login with username and get JWT token
GET /logout - Stateless logout acknowledgement
GET /profile - Current user with latest application's report and job
GET /test - Liveness check
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text

from mbkm.db.postgres import get_db_session, fetch_one
from mbkm.db.queries import user_with_roles
from mbkm.core.auth import hash_password, verify_password, create_access_token, get_current_user
from mbkm.core.errors import ValidationError, UnauthorizedError
from mbkm.core.logging import get_logger
from mbkm.core.permissions import REGISTER_ROLES, COMPANY_PROFILE_ROLES
from mbkm.schemas.schemas import RegisterRequest, LoginRequest, MessageResponse

router = APIRouter(tags=["Authentication"])
logger = get_logger(__name__)

PROFILE_FIELDS = [
    "phone_number", "address", "program_study", "faculty", "nim", "semester",
    "social_media", "emergency_contact", "profile_description", "position",
]


def _auth_payload(user: dict) -> dict:
    roles = user.get("roles") or []
    role_title = roles[0]["title"] if roles else ""
    token = create_access_token({"id": user["id"], "username": user["username"], "role": role_title})
    return {"token": token, "role": role_title, "user": user}


@router.get("/test")
async def test():
    return {"code": 200, "message": "ok"}


@router.post("/register", status_code=201)
async def register(request: RegisterRequest):
    """
    Register a new user account and return a token.

    cdc / company / mitra registrations also get a company profile.
    """
    with get_db_session() as db:
        existing = fetch_one(
            db,
            "SELECT email, username FROM users WHERE email = :email OR username = :username",
            {"email": request.email, "username": request.username}
        )
        if existing:
            errors = {}
            if existing["email"] == request.email:
                errors["email"] = "Email already exists"
            if existing["username"] == request.username:
                errors["username"] = "Username already exists"
            raise ValidationError("Validation failed", errors=errors)

        params = {field: getattr(request, field) for field in PROFILE_FIELDS}
        params.update({
            "name": request.name, "email": request.email, "username": request.username,
            "password": hash_password(request.password), "role": request.role,
        })
        result = db.execute(
            text(f"""
                INSERT INTO users (name, email, username, password, role, {', '.join(PROFILE_FIELDS)})
                VALUES (:name, :email, :username, :password, :role, {', '.join(':' + f for f in PROFILE_FIELDS)})
                RETURNING id
            """),
            params
        )
        user_id = result.fetchone()[0]

        db.execute(
            text("INSERT INTO role_user (user_id, role_id) VALUES (:uid, :rid)"),
            {"uid": user_id, "rid": int(REGISTER_ROLES[request.role])}
        )

        if request.role in COMPANY_PROFILE_ROLES:
            db.execute(
                text("""
                    INSERT INTO companies (company_name, business_fields, company_size, company_website,
                        company_profile_description, company_phone_number, company_address, user_id, created_by_id)
                    VALUES (:company_name, :business_fields, :company_size, :company_website,
                        :company_profile_description, :company_phone_number, :company_address, :uid, :uid)
                """),
                {
                    "company_name": request.company_name, "business_fields": request.business_fields,
                    "company_size": request.company_size, "company_website": request.company_website,
                    "company_profile_description": request.company_profile_description,
                    "company_phone_number": request.company_phone_number,
                    "company_address": request.company_address, "uid": user_id,
                }
            )

        team_id = request.team
        if team_id is None:
            team = db.execute(
                text("INSERT INTO teams (name, owner_id) VALUES (:name, :owner) RETURNING id"),
                {"name": request.email, "owner": user_id}
            )
            team_id = team.fetchone()[0]
        db.execute(text("UPDATE users SET team_id = :tid WHERE id = :uid"), {"tid": team_id, "uid": user_id})

        user = user_with_roles(db, user_id)

    logger.info("Registered user %s as %s", request.username, request.role)
    return _auth_payload(user)


@router.post("/login")
async def login(request: LoginRequest):
    """
    Login with username and password.

    Include token in requests: Authorization: Bearer <token>
    """
    with get_db_session() as db:
        row = fetch_one(
            db, "SELECT id, password FROM users WHERE username = :username",
            {"username": request.username}
        )
        if not row:
            raise ValidationError("Validation failed", errors={"username": "Username not found"})

        if not verify_password(request.password, row["password"]):
            raise UnauthorizedError("Invalid credentials")

        user = user_with_roles(db, row["id"])

    return _auth_payload(user)


@router.get("/logout", response_model=MessageResponse)
async def logout(user: dict = Depends(get_current_user)):
    """Tokens are not tracked server-side; the client drops its token."""
    return MessageResponse(message="Logged out")


@router.get("/profile")
async def profile(current: dict = Depends(get_current_user)):
    """Current user, plus the report and job of their latest application."""
    with get_db_session() as db:
        user = user_with_roles(db, current["user_id"])
        if user["roles"]:
            user["role"] = user["roles"][0]["title"]

        report = job = None
        apply_job = fetch_one(db, """
            SELECT id FROM apply_jobs WHERE created_by_id = :uid
            ORDER BY created_at DESC, id DESC LIMIT 1
        """, {"uid": current["user_id"]})
        if apply_job:
            report = fetch_one(db, "SELECT * FROM reports WHERE apply_job_id = :aid", {"aid": apply_job["id"]})
            job = fetch_one(db, """
                SELECT j.* FROM jobs j JOIN apply_job_job ajj ON ajj.job_id = j.id
                WHERE ajj.apply_job_id = :aid ORDER BY j.id LIMIT 1
            """, {"aid": apply_job["id"]})

    return {"user": user, "report": report, "job": job}
