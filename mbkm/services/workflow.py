"""
Status workflows for applications (apply_jobs) and job postings.

Application lifecycle:

    Melamar -> Disetujui -> Aktif -> Selesai
    Melamar -> Ditolak

Job posting review:

    Perlu Ditinjau -> Tersedia | Ditolak
    Tersedia -> Ditutup

Every transition is one conditional UPDATE guarded on the expected current
status, so of two concurrent requests at most one changes the row.
"""

from typing import Dict, Optional, Tuple

from sqlalchemy import text
from sqlalchemy.orm import Session

from mbkm.core.errors import InvalidTransitionError, NotFoundError, ValidationError
from mbkm.core.logging import get_logger

logger = get_logger(__name__)


class ApplyStatus:
    APPLIED = "Melamar"
    APPROVED = "Disetujui"
    ACTIVE = "Aktif"
    DONE = "Selesai"
    REJECTED = "Ditolak"


class JobStatus:
    IN_REVIEW = "Perlu Ditinjau"
    AVAILABLE = "Tersedia"
    REJECTED = "Ditolak"
    CLOSED = "Ditutup"


# action -> (required current status, new status)
APPLY_TRANSITIONS: Dict[str, Tuple[str, str]] = {
    "approve": (ApplyStatus.APPLIED, ApplyStatus.APPROVED),
    "reject": (ApplyStatus.APPLIED, ApplyStatus.REJECTED),
    "activate": (ApplyStatus.APPROVED, ApplyStatus.ACTIVE),
    "done": (ApplyStatus.ACTIVE, ApplyStatus.DONE),
}

JOB_TRANSITIONS: Dict[str, Tuple[str, str]] = {
    "approve": (JobStatus.IN_REVIEW, JobStatus.AVAILABLE),
    "reject": (JobStatus.IN_REVIEW, JobStatus.REJECTED),
    "close": (JobStatus.AVAILABLE, JobStatus.CLOSED),
}


def _lookup(table: Dict[str, Tuple[str, str]], action: str) -> Tuple[str, str]:
    try:
        return table[action]
    except KeyError:
        raise ValidationError(f"Unknown action '{action}'")


def next_status(action: str, current: Optional[str]) -> str:
    """Pure check: the status `action` moves an application to from `current`."""
    required, target = _lookup(APPLY_TRANSITIONS, action)
    if current != required:
        raise InvalidTransitionError(
            f"Cannot {action} application with status '{current}'",
            errors={"status": f"expected '{required}'"},
        )
    return target


def action_for(current: Optional[str], target: str) -> str:
    """The action that moves an application from `current` to `target`."""
    for action, (required, new_status) in APPLY_TRANSITIONS.items():
        if required == current and new_status == target:
            return action
    raise InvalidTransitionError(
        f"Cannot change application status from '{current}' to '{target}'",
        errors={"status": f"'{target}' is not reachable from '{current}'"},
    )


def _conditional_update(db: Session, table: str, row_id: int, current: str, target: str) -> bool:
    result = db.execute(
        text(f"""
            UPDATE {table} SET status = :target, updated_at = CURRENT_TIMESTAMP
            WHERE id = :id AND status = :current
        """),
        {"target": target, "id": row_id, "current": current}
    )
    return result.rowcount == 1


def _current_status(db: Session, table: str, row_id: int) -> Optional[Tuple[str]]:
    return db.execute(text(f"SELECT status FROM {table} WHERE id = :id"), {"id": row_id}).fetchone()


def transition_apply_job(db: Session, apply_job_id: int, action: str) -> str:
    """
    Apply a workflow action to an application.

    Returns the new status. Raises NotFoundError when the application does
    not exist and InvalidTransitionError when it is not in the required state.
    """
    required, target = _lookup(APPLY_TRANSITIONS, action)

    if _conditional_update(db, "apply_jobs", apply_job_id, required, target):
        logger.info("apply_job %s: %s -> %s (%s)", apply_job_id, required, target, action)
        return target

    row = _current_status(db, "apply_jobs", apply_job_id)
    if row is None:
        raise NotFoundError("Apply job not found")
    next_status(action, row[0])
    # another request moved the row between the update and the re-read
    raise InvalidTransitionError("Application status changed, retry the request")


def assign_lecturers(
    db: Session,
    apply_job_id: int,
    responsible_lecturer_id: Optional[int],
    examiner_lecturer_id: Optional[int],
) -> str:
    """
    Set the supervising and examining lecturers of an application. A None id
    keeps the current assignment.

    An application that is Disetujui becomes Aktif at the same time.
    Returns the resulting status.
    """
    row = _current_status(db, "apply_jobs", apply_job_id)
    if row is None:
        raise NotFoundError("Apply job not found")

    db.execute(
        text("""
            UPDATE apply_jobs
            SET responsible_lecturer_id = COALESCE(:responsible, responsible_lecturer_id),
                examiner_lecturer_id = COALESCE(:examiner, examiner_lecturer_id),
                updated_at = CURRENT_TIMESTAMP
            WHERE id = :id
        """),
        {"responsible": responsible_lecturer_id, "examiner": examiner_lecturer_id, "id": apply_job_id}
    )

    required, target = APPLY_TRANSITIONS["activate"]
    if _conditional_update(db, "apply_jobs", apply_job_id, required, target):
        logger.info("apply_job %s: %s -> %s (set-lecturer)", apply_job_id, required, target)
        return target

    return _current_status(db, "apply_jobs", apply_job_id)[0]


def review_job(db: Session, job_id: int, action: str) -> bool:
    """
    Apply a review action to a job posting.

    Returns False (and changes nothing) when the job is not in the state the
    action requires. Raises NotFoundError for a missing job.
    """
    required, target = _lookup(JOB_TRANSITIONS, action)

    if _conditional_update(db, "jobs", job_id, required, target):
        logger.info("job %s: %s -> %s (%s)", job_id, required, target, action)
        return True

    if _current_status(db, "jobs", job_id) is None:
        raise NotFoundError("Job not found")
    return False
