"""
Database schema - SQLAlchemy Core table definitions.

Routes query these tables with plain SQL (sqlalchemy.text); the Table objects
exist so the schema can be created on PostgreSQL and on SQLite (tests) from
one definition.

Tables:
- Access:     roles, permissions, permission_role, role_user, teams, users
- Placement:  companies, jobs, articles, apply_jobs, apply_job_user, apply_job_job
- Academic:   reports, activity_details, evaluations, bobot_nilai, konversi_nilai
- Master:     fakultas, program_studi, mata_kuliah, perusahaans
"""

from sqlalchemy import (
    Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, MetaData,
    String, Table, Text, UniqueConstraint, func, text,
)

from mbkm.core.permissions import ROLE_TITLES

metadata = MetaData()


def _timestamps():
    return [
        Column("created_at", DateTime, server_default=func.now()),
        Column("updated_at", DateTime, server_default=func.now()),
    ]


# ============================================================
# ACCESS
# ============================================================

roles = Table(
    "roles", metadata,
    Column("id", Integer, primary_key=True),
    Column("title", String(255), nullable=False),
    *_timestamps(),
)

permissions = Table(
    "permissions", metadata,
    Column("id", Integer, primary_key=True),
    Column("title", String(255), nullable=False),
    *_timestamps(),
)

permission_role = Table(
    "permission_role", metadata,
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", Integer, ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
)

teams = Table(
    "teams", metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(255)),
    Column("owner_id", Integer),
    *_timestamps(),
)

users = Table(
    "users", metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255), unique=True),
    Column("username", String(255), unique=True),
    Column("password", String(255)),
    Column("nim", String(50)),
    Column("program_study", String(255)),
    Column("faculty", String(255)),
    Column("semester", String(255)),
    Column("phone_number", String(50)),
    Column("address", Text),
    Column("social_media", String(255)),
    Column("emergency_contact", String(255)),
    Column("profile_description", Text),
    Column("position", String(255)),
    Column("ipk", String(255)),
    Column("birthdate", Date),
    Column("role", String(50), server_default="student"),
    Column("status", String(50)),
    Column("verified", Boolean, server_default=text("false")),
    Column("approved", Boolean, server_default=text("true")),
    Column("team_id", Integer, ForeignKey("teams.id", ondelete="SET NULL")),
    Column("id_program_studi", Integer),
    *_timestamps(),
)

role_user = Table(
    "role_user", metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


# ============================================================
# PLACEMENT
# ============================================================

companies = Table(
    "companies", metadata,
    Column("id", Integer, primary_key=True),
    Column("company_name", String(255)),
    Column("business_fields", String(255)),
    Column("company_size", String(100)),
    Column("company_website", String(255)),
    Column("company_profile_description", Text),
    Column("company_phone_number", String(50)),
    Column("company_address", Text),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="SET NULL")),
    Column("created_by_id", Integer, ForeignKey("users.id", ondelete="SET NULL")),
    *_timestamps(),
)

jobs = Table(
    "jobs", metadata,
    Column("id", Integer, primary_key=True),
    Column("title", String(255), nullable=False),
    Column("company", String(255)),
    Column("location", String(255)),
    Column("duration", String(255)),
    Column("description", Text),
    Column("benefits", Text),
    Column("job_type", String(50)),
    Column("salary", String(255)),
    Column("vacancy_type", String(50)),
    Column("status", String(50), server_default="Perlu Ditinjau"),
    Column("mata_kuliah", Text),
    Column("deadline", DateTime),
    Column("company_id", Integer, ForeignKey("companies.id", ondelete="SET NULL")),
    Column("created_by_id", Integer, ForeignKey("users.id", ondelete="SET NULL")),
    *_timestamps(),
)

articles = Table(
    "articles", metadata,
    Column("id", Integer, primary_key=True),
    Column("title", String(255), nullable=False),
    Column("content", Text),
    Column("views", Integer, server_default="0"),
    *_timestamps(),
)

apply_jobs = Table(
    "apply_jobs", metadata,
    Column("id", Integer, primary_key=True),
    Column("job_user", String(255)),
    Column("status", String(100)),
    Column("responsible_lecturer_id", Integer, ForeignKey("users.id", ondelete="SET NULL")),
    Column("examiner_lecturer_id", Integer, ForeignKey("users.id", ondelete="SET NULL")),
    Column("created_by_id", Integer, ForeignKey("users.id", ondelete="SET NULL")),
    *_timestamps(),
)

apply_job_user = Table(
    "apply_job_user", metadata,
    Column("apply_job_id", Integer, ForeignKey("apply_jobs.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)

apply_job_job = Table(
    "apply_job_job", metadata,
    Column("apply_job_id", Integer, ForeignKey("apply_jobs.id", ondelete="CASCADE"), primary_key=True),
    Column("job_id", Integer, ForeignKey("jobs.id", ondelete="CASCADE"), primary_key=True),
)


# ============================================================
# ACADEMIC
# ============================================================

reports = Table(
    "reports", metadata,
    Column("id", Integer, primary_key=True),
    Column("apply_job_id", Integer, ForeignKey("apply_jobs.id", ondelete="CASCADE"), unique=True),
    Column("report_job_user", String(255)),
    Column("start_date", DateTime),
    Column("end_date", DateTime),
    Column("status", String(100)),
    Column("file_laporan", Text),
    Column("company_checked_id", Integer),
    Column("company_checked_at", DateTime),
    Column("lecturer_checked_id", Integer),
    Column("lecturer_checked_at", DateTime),
    Column("examiner_checked_id", Integer),
    Column("examiner_checked_at", DateTime),
    Column("prodi_checked_id", Integer),
    Column("prodi_checked_at", DateTime),
    *_timestamps(),
)

activity_details = Table(
    "activity_details", metadata,
    Column("id", Integer, primary_key=True),
    Column("report_job_id", Integer, ForeignKey("reports.id", ondelete="CASCADE"), nullable=False),
    Column("date", Date),
    Column("activity_details", Text),
    *_timestamps(),
)


def _grade_columns(prefix: str, id_column: str):
    return [
        Column(id_column, Integer),
        Column(f"{prefix}_grade", String(10)),
        Column(f"{prefix}_grade_score", Float),
        Column(f"{prefix}_grade_description", Text),
        Column(f"{prefix}_grade_date", DateTime),
    ]


evaluations = Table(
    "evaluations", metadata,
    Column("id", Integer, primary_key=True),
    Column("apply_job_id", Integer, ForeignKey("apply_jobs.id", ondelete="CASCADE"), unique=True),
    Column("status", String(100)),
    Column("grade", String(10)),
    *_grade_columns("company", "company_personnel_id"),
    *_grade_columns("lecturer", "lecturer_id"),
    *_grade_columns("examiner", "examiner_id"),
    *_grade_columns("prodi", "prodi_id"),
    *_timestamps(),
)

bobot_nilai = Table(
    "bobot_nilai", metadata,
    Column("id", Integer, primary_key=True),
    Column("id_program_studi", Integer, unique=True),
    Column("bobot_nilai_perusahaan", Float, nullable=False, server_default="0"),
    Column("bobot_nilai_pembimbing", Float, nullable=False, server_default="0"),
    Column("bobot_nilai_penguji", Float, nullable=False, server_default="0"),
    *_timestamps(),
)


# ============================================================
# MASTER DATA
# ============================================================

fakultas = Table(
    "fakultas", metadata,
    Column("id", Integer, primary_key=True),
    Column("nama", String(255)),
    *_timestamps(),
)

program_studi = Table(
    "program_studi", metadata,
    Column("id", Integer, primary_key=True),
    Column("nama", String(255)),
    Column("id_unit_parent", Integer, ForeignKey("fakultas.id", ondelete="SET NULL")),
    *_timestamps(),
)

mata_kuliah = Table(
    "mata_kuliah", metadata,
    Column("id", Integer, primary_key=True),
    Column("kode_matkul", String(50)),
    Column("nama_matkul", String(255)),
    Column("sks", Integer),
    Column("id_program_studi", Integer, ForeignKey("program_studi.id", ondelete="SET NULL")),
    *_timestamps(),
)

konversi_nilai = Table(
    "konversi_nilai", metadata,
    Column("id", Integer, primary_key=True),
    Column("apply_job_id", Integer, ForeignKey("apply_jobs.id", ondelete="CASCADE"), nullable=False),
    Column("matkul_id", Integer, ForeignKey("mata_kuliah.id", ondelete="CASCADE"), nullable=False),
    Column("grade", String(5)),
    Column("score", Float),
    UniqueConstraint("apply_job_id", "matkul_id", name="uq_konversi_apply_job_matkul"),
    *_timestamps(),
)

perusahaans = Table(
    "perusahaans", metadata,
    Column("id", Integer, primary_key=True),
    Column("nama_perusahaan", String(255)),
    Column("alamat_perusahaan", Text),
    Column("email_perusahaan", String(255)),
    Column("website_perusahaan", String(255)),
    Column("facebook", String(255)),
    Column("instagram", String(255)),
    Column("tiktok", String(255)),
    Column("linkedin", String(255)),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="SET NULL")),
    *_timestamps(),
)


def create_all(engine) -> None:
    metadata.create_all(engine)


def drop_all(engine) -> None:
    metadata.drop_all(engine)


def seed_roles(engine) -> int:
    """Insert the fixed role rows (ids are referenced by the permission policy). Returns rows added."""
    added = 0
    with engine.begin() as conn:
        existing = {row[0] for row in conn.execute(text("SELECT id FROM roles"))}
        for role_id, title in ROLE_TITLES.items():
            if role_id in existing:
                continue
            conn.execute(
                text("INSERT INTO roles (id, title) VALUES (:id, :title)"),
                {"id": int(role_id), "title": title},
            )
            added += 1
        if added and engine.dialect.name == "postgresql":
            # explicit ids do not advance the serial sequence
            conn.execute(text(
                "SELECT setval(pg_get_serial_sequence('roles', 'id'), (SELECT MAX(id) FROM roles))"
            ))
    return added
