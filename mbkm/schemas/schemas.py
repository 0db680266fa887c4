"""
Pydantic Schemas - Request Validation

All API request schemas in one file for simplicity. Responses are plain
dict envelopes built from query rows ({"data": ..., "count": ...}).
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List, Any
from datetime import date as date_type, datetime
from enum import Enum

from mbkm.core.permissions import REGISTER_ROLES


# ============================================================
# ENUMS
# ============================================================

class ApplyJobStatus(str, Enum):
    melamar = "Melamar"
    disetujui = "Disetujui"
    aktif = "Aktif"
    selesai = "Selesai"
    ditolak = "Ditolak"


class JobStatus(str, Enum):
    perlu_ditinjau = "Perlu Ditinjau"
    tersedia = "Tersedia"
    ditolak = "Ditolak"
    ditutup = "Ditutup"


# ============================================================
# AUTH SCHEMAS
# ============================================================

class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6)
    role: str = "student"
    team: Optional[int] = None

    phone_number: Optional[str] = None
    address: Optional[str] = None
    program_study: Optional[str] = None
    faculty: Optional[str] = None
    nim: Optional[str] = None
    semester: Optional[str] = None
    social_media: Optional[str] = None
    emergency_contact: Optional[str] = None
    profile_description: Optional[str] = None
    position: Optional[str] = None

    # company profile, used for cdc / company / mitra
    company_name: Optional[str] = None
    business_fields: Optional[str] = None
    company_size: Optional[str] = None
    company_website: Optional[str] = None
    company_profile_description: Optional[str] = None
    company_phone_number: Optional[str] = None
    company_address: Optional[str] = None

    @field_validator("role")
    @classmethod
    def known_role(cls, v: str) -> str:
        v = (v or "student").strip().lower()
        if v not in REGISTER_ROLES:
            raise ValueError(f"must be one of: {', '.join(REGISTER_ROLES)}")
        return v


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


# ============================================================
# JOB SCHEMAS
# ============================================================

class JobCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    company: Optional[str] = None
    location: Optional[str] = None
    duration: Optional[str] = None
    description: Optional[str] = None
    benefits: Optional[str] = None
    job_type: Optional[str] = None
    salary: Optional[str] = None
    vacancy_type: Optional[str] = None
    mata_kuliah: Optional[str] = None
    deadline: Optional[datetime] = None


class JobUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    company: Optional[str] = None
    location: Optional[str] = None
    duration: Optional[str] = None
    description: Optional[str] = None
    benefits: Optional[str] = None
    job_type: Optional[str] = None
    salary: Optional[str] = None
    vacancy_type: Optional[str] = None
    mata_kuliah: Optional[str] = None
    deadline: Optional[datetime] = None


# ============================================================
# APPLY JOB SCHEMAS
# ============================================================

class ApplyJobCreate(BaseModel):
    jobs: int

    @field_validator("jobs", mode="before")
    @classmethod
    def single_job_id(cls, v: Any) -> Any:
        # the frontend sends a number, a numeric string or a one-element list
        if isinstance(v, list):
            if not v:
                raise ValueError("Job ID is required")
            v = v[0]
        if isinstance(v, str):
            v = v.strip()
            if not v.isdigit():
                raise ValueError("Invalid job ID")
            return int(v)
        return v

    @field_validator("jobs")
    @classmethod
    def positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Job ID is required")
        return v


class ApplyJobUpdate(BaseModel):
    status: Optional[ApplyJobStatus] = None
    responsible_lecturer_id: Optional[int] = None
    examiner_lecturer_id: Optional[int] = None


class SetLecturerRequest(BaseModel):
    lecturer_id: Optional[int] = None
    examiner_id: Optional[int] = None


# ============================================================
# COMPANY SCHEMAS
# ============================================================

class CompanyCreate(BaseModel):
    company_name: str = Field(..., min_length=1, max_length=255)
    business_fields: Optional[str] = None
    company_size: Optional[str] = None
    company_website: Optional[str] = None
    company_profile_description: Optional[str] = None
    company_phone_number: Optional[str] = None
    company_address: Optional[str] = None


class CompanyUpdate(BaseModel):
    company_name: Optional[str] = Field(None, min_length=1, max_length=255)
    business_fields: Optional[str] = None
    company_size: Optional[str] = None
    company_website: Optional[str] = None
    company_profile_description: Optional[str] = None
    company_phone_number: Optional[str] = None
    company_address: Optional[str] = None


class PerusahaanBase(BaseModel):
    nama_perusahaan: Optional[str] = None
    alamat_perusahaan: Optional[str] = None
    email_perusahaan: Optional[EmailStr] = None
    website_perusahaan: Optional[str] = None
    facebook: Optional[str] = None
    instagram: Optional[str] = None
    tiktok: Optional[str] = None
    linkedin: Optional[str] = None
    user_id: Optional[int] = None


class PerusahaanCreate(PerusahaanBase):
    nama_perusahaan: str = Field(..., min_length=1, max_length=255)


class PerusahaanUpdate(PerusahaanBase):
    pass


# ============================================================
# MASTER DATA SCHEMAS
# ============================================================

class FakultasCreate(BaseModel):
    nama: str = Field(..., min_length=1, max_length=255)


class ProgramStudiCreate(BaseModel):
    nama: str = Field(..., min_length=1, max_length=255)
    id_unit_parent: Optional[int] = None


class MataKuliahCreate(BaseModel):
    kode_matkul: str = Field(..., min_length=1, max_length=50)
    nama_matkul: str = Field(..., min_length=1, max_length=255)
    sks: Optional[int] = Field(None, ge=0)
    id_program_studi: Optional[int] = None


# ============================================================
# ARTICLE SCHEMAS
# ============================================================

class ArticleCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: Optional[str] = None


class ArticleUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = None


# ============================================================
# REPORT / ACTIVITY SCHEMAS
# ============================================================

class ActivityCreate(BaseModel):
    report_job_id: int
    date: date_type
    activity_details: str = Field(..., min_length=1)


class ActivityUpdate(BaseModel):
    date: Optional[date_type] = None
    activity_details: Optional[str] = Field(None, min_length=1)


# ============================================================
# EVALUATION SCHEMAS
# ============================================================

class GradeSubmission(BaseModel):
    apply_job_id: int
    grade_score: float
    grade: Optional[str] = Field(None, max_length=10)
    grade_description: Optional[str] = None
    is_examiner: bool = False


class KonversiCreate(BaseModel):
    apply_job_id: int
    matkul_id: int
    grade: Optional[str] = Field(None, max_length=5)
    score: Optional[float] = None


class KonversiUpdate(BaseModel):
    grade: Optional[str] = Field(None, max_length=5)
    score: Optional[float] = None


class BobotNilaiRequest(BaseModel):
    id_program_studi: int = Field(..., gt=0)
    bobot_nilai_perusahaan: float = Field(..., ge=0)
    bobot_nilai_pembimbing: float = Field(..., ge=0)
    bobot_nilai_penguji: float = Field(..., ge=0)


# ============================================================
# USER / ROLE SCHEMAS
# ============================================================

class UserCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    username: Optional[str] = None
    password: str = Field(..., min_length=6)
    role: Optional[str] = None
    status: Optional[str] = None
    nim: Optional[str] = None
    program_study: Optional[str] = None
    id_program_studi: Optional[int] = None
    roles: List[int] = []


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6)
    status: Optional[str] = None
    program_study: Optional[str] = None
    id_program_studi: Optional[int] = None
    roles: Optional[List[int]] = None


class PermissionRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)


class RoleCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    permissions: List[int] = []


class RoleUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    permissions: Optional[List[int]] = None


class AssignRoleRequest(BaseModel):
    user_id: int
    role_id: int


# ============================================================
# COMMON SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True
