"""
Import Routes

POST /import/student - Bulk-create student accounts from a CSV upload
"""

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy import text

from mbkm.db.postgres import get_db_session, fetch_one
from mbkm.core.auth import hash_password, require_permission
from mbkm.core.config import get_settings
from mbkm.core.logging import get_logger
from mbkm.core.permissions import RoleId
from mbkm.services.student_import import parse_student_csv
from mbkm.utils.file_upload import read_upload

router = APIRouter(prefix="/import", tags=["Import"])
logger = get_logger(__name__)
settings = get_settings()


@router.post("/student")
async def import_students(
    file: UploadFile = File(...),
    user: dict = Depends(require_permission("import.students")),
):
    """
    Import students from CSV (name, nim, birthdate, program_study, status).

    Username is the NIM, email is <nim>@<import domain>, and the initial
    password is the birthdate as YYYYMMDD. Rows whose NIM or email already
    exists are skipped.
    """
    content = await read_upload(file, allowed_extensions={".csv", ".txt"})
    rows, skipped = parse_student_csv(content)

    inserted = 0
    with get_db_session() as db:
        for row in rows:
            email = row.email(settings.import_email_domain)
            if fetch_one(
                db, "SELECT id FROM users WHERE username = :username OR email = :email",
                {"username": row.username, "email": email}
            ):
                skipped += 1
                continue

            result = db.execute(
                text("""
                    INSERT INTO users (name, email, username, password, nim, program_study, status,
                        birthdate, role, verified, approved)
                    VALUES (:name, :email, :username, :password, :nim, :program_study, :status,
                        :birthdate, 'student', :verified, :approved)
                    RETURNING id
                """),
                {
                    "name": row.name, "email": email, "username": row.username,
                    "password": hash_password(row.initial_password), "nim": row.nim,
                    "program_study": row.program_study, "status": row.status,
                    "birthdate": row.birthdate.isoformat(), "verified": False, "approved": False,
                }
            )
            db.execute(
                text("INSERT INTO role_user (user_id, role_id) VALUES (:uid, :rid)"),
                {"uid": result.fetchone()[0], "rid": int(RoleId.STUDENT)}
            )
            inserted += 1

    logger.info("Student import by user %s: %d inserted, %d skipped", user["user_id"], inserted, skipped)
    return {"status": inserted > 0, "total_import": inserted, "skipped": skipped}
