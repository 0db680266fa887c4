"""
Shared read queries used by more than one router.

Everything here runs inside a caller's session (see get_db_session) and
returns plain dicts, ready to be put into a {"data": ...} envelope.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from mbkm.db.postgres import fetch_all, fetch_one

# Public user columns (never the password hash)
USER_COLUMNS = """
    id, name, email, username, nim, program_study, faculty, semester, phone_number,
    address, social_media, emergency_contact, profile_description, position, ipk,
    birthdate, role, status, verified, approved, team_id, id_program_studi,
    created_at, updated_at
"""

USER_BRIEF_COLUMNS = "u.id, u.name, u.email, u.nim, u.program_study, u.faculty"


def page_offset(page: int, per_page: int) -> int:
    return (page - 1) * per_page


def user_public(db: Session, user_id: int) -> Optional[dict]:
    return fetch_one(db, f"SELECT {USER_COLUMNS} FROM users WHERE id = :id", {"id": user_id})


def user_roles(db: Session, user_id: int) -> List[dict]:
    return fetch_all(db, """
        SELECT r.id, r.title FROM roles r
        JOIN role_user ru ON ru.role_id = r.id
        WHERE ru.user_id = :uid ORDER BY r.id
    """, {"uid": user_id})


def user_with_roles(db: Session, user_id: int) -> Optional[dict]:
    user = user_public(db, user_id)
    if user:
        user["roles"] = user_roles(db, user_id)
    return user


def _user_brief(db: Session, user_id: Optional[int]) -> Optional[dict]:
    if user_id is None:
        return None
    return fetch_one(db, "SELECT id, name, email FROM users WHERE id = :id", {"id": user_id})


def attach_apply_job_relations(db: Session, apply_job: dict) -> dict:
    """Add users, jobs and lecturer summaries to an apply_jobs row."""
    aid = apply_job["id"]
    apply_job["users"] = fetch_all(db, f"""
        SELECT {USER_BRIEF_COLUMNS} FROM users u
        JOIN apply_job_user aju ON aju.user_id = u.id
        WHERE aju.apply_job_id = :aid ORDER BY u.id
    """, {"aid": aid})
    apply_job["jobs"] = fetch_all(db, """
        SELECT j.* FROM jobs j
        JOIN apply_job_job ajj ON ajj.job_id = j.id
        WHERE ajj.apply_job_id = :aid ORDER BY j.id
    """, {"aid": aid})
    apply_job["created_by"] = _user_brief(db, apply_job.get("created_by_id"))
    apply_job["responsible_lecturer"] = _user_brief(db, apply_job.get("responsible_lecturer_id"))
    apply_job["examiner_lecturer"] = _user_brief(db, apply_job.get("examiner_lecturer_id"))
    return apply_job


def apply_job_detail(db: Session, apply_job_id: int) -> Optional[dict]:
    row = fetch_one(db, "SELECT * FROM apply_jobs WHERE id = :id", {"id": apply_job_id})
    if row is None:
        return None
    return attach_apply_job_relations(db, row)


def weights_for_apply_job(db: Session, apply_job_id: int) -> Optional[dict]:
    """
    Weight row for the applicant's study program.

    Falls back to the first configured program when the applicant has no
    program or the program has no weights yet.
    """
    row = fetch_one(db, """
        SELECT b.* FROM bobot_nilai b
        JOIN users u ON u.id_program_studi = b.id_program_studi
        JOIN apply_jobs a ON a.created_by_id = u.id
        WHERE a.id = :aid
    """, {"aid": apply_job_id})
    if row is not None:
        return row
    return fetch_one(db, """
        SELECT * FROM bobot_nilai WHERE id_program_studi IS NOT NULL ORDER BY id LIMIT 1
    """)
