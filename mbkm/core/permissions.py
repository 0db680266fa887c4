"""
Role policy table.

Role ids are fixed (seeded by scripts/init_db.py) and every authorization
decision in the API is looked up here:

- POLICY:        action name -> roles allowed to perform it
- grader_slots:  which evaluation / report columns a grading role writes
- REGISTER_ROLES: role requested at registration -> role id
"""

from enum import IntEnum
from typing import Dict, FrozenSet, Iterable, List, Optional


class RoleId(IntEnum):
    SUPERADMIN = 1
    STUDENT = 2
    CDC = 3
    COMPANY = 4
    DOSEN = 5
    PRODI = 6


ROLE_TITLES: Dict[RoleId, str] = {
    RoleId.SUPERADMIN: "superadmin",
    RoleId.STUDENT: "student",
    RoleId.CDC: "cdc",
    RoleId.COMPANY: "company",
    RoleId.DOSEN: "dosen",
    RoleId.PRODI: "prodi",
}

# "mitra" is the partner-company alias used by the registration form
REGISTER_ROLES: Dict[str, RoleId] = {
    "student": RoleId.STUDENT,
    "cdc": RoleId.CDC,
    "company": RoleId.COMPANY,
    "mitra": RoleId.COMPANY,
}

# Registration roles that also get a company profile
COMPANY_PROFILE_ROLES = frozenset({"cdc", "company", "mitra"})

_STAFF = frozenset({RoleId.SUPERADMIN, RoleId.CDC})

POLICY: Dict[str, FrozenSet[RoleId]] = {
    "job.review": _STAFF,
    "apply_job.transition": _STAFF | {RoleId.COMPANY, RoleId.PRODI},
    "apply_job.assign": _STAFF | {RoleId.PRODI},
    "report.check": frozenset({RoleId.COMPANY, RoleId.DOSEN, RoleId.PRODI}),
    "evaluation.grade": frozenset({RoleId.COMPANY, RoleId.DOSEN, RoleId.PRODI}),
    "konversi.manage": _STAFF | {RoleId.DOSEN, RoleId.PRODI},
    "settings.manage": _STAFF | {RoleId.PRODI},
    "import.students": _STAFF,
    "master.manage": _STAFF,
    "user.manage": frozenset({RoleId.SUPERADMIN}),
    "role.manage": frozenset({RoleId.SUPERADMIN}),
}


def is_allowed(action: str, role_ids: Iterable[int]) -> bool:
    allowed = POLICY.get(action)
    if allowed is None:
        raise KeyError(f"Unknown action '{action}'")
    return any(rid in allowed for rid in role_ids)


def is_staff(role_ids: Iterable[int]) -> bool:
    return any(rid in _STAFF for rid in role_ids)


# Evaluation column layout per grader slot: (grader id column, grade column prefix)
EVALUATION_COLUMNS: Dict[str, tuple] = {
    "company": ("company_personnel_id", "company"),
    "lecturer": ("lecturer_id", "lecturer"),
    "examiner": ("examiner_id", "examiner"),
    "prodi": ("prodi_id", "prodi"),
}


def grader_slots(role_ids: Iterable[int], *, as_examiner: bool) -> List[str]:
    """
    Resolve which grader slots a user fills.

    Company writes the company slot, prodi writes the prodi slot and a
    lecturer (dosen) writes either the examiner or the supervising-lecturer
    slot depending on `as_examiner`.
    """
    slots: List[str] = []
    for rid in role_ids:
        slot: Optional[str] = None
        if rid == RoleId.COMPANY:
            slot = "company"
        elif rid == RoleId.DOSEN:
            slot = "examiner" if as_examiner else "lecturer"
        elif rid == RoleId.PRODI:
            slot = "prodi"
        if slot and slot not in slots:
            slots.append(slot)
    return slots
