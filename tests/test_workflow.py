import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from mbkm.core.errors import InvalidTransitionError, NotFoundError, ValidationError
from mbkm.db.postgres import get_db_session
from mbkm.services import workflow
from mbkm.services.workflow import (
    ApplyStatus,
    JobStatus,
    action_for,
    assign_lecturers,
    next_status,
    review_job,
    transition_apply_job,
)


@pytest.mark.parametrize("action, current, expected", [
    ("approve", ApplyStatus.APPLIED, ApplyStatus.APPROVED),
    ("reject", ApplyStatus.APPLIED, ApplyStatus.REJECTED),
    ("activate", ApplyStatus.APPROVED, ApplyStatus.ACTIVE),
    ("done", ApplyStatus.ACTIVE, ApplyStatus.DONE),
])
def test_next_status_forward(action, current, expected):
    assert next_status(action, current) == expected


@pytest.mark.parametrize("action, current", [
    ("approve", ApplyStatus.APPROVED),
    ("activate", ApplyStatus.REJECTED),
    ("activate", ApplyStatus.APPLIED),
    ("done", ApplyStatus.APPROVED),
    ("reject", ApplyStatus.ACTIVE),
    ("approve", None),
])
def test_next_status_rejects_wrong_state(action, current):
    with pytest.raises(InvalidTransitionError):
        next_status(action, current)


def test_unknown_action():
    with pytest.raises(ValidationError):
        next_status("archive", ApplyStatus.APPLIED)


def _status(fetch_row, apply_job_id):
    return fetch_row("SELECT status FROM apply_jobs WHERE id = :id", id=apply_job_id)["status"]


def test_approve_twice_fails_without_change(make_user, make_apply_job, fetch_row):
    apply_job_id = make_apply_job(make_user())

    with get_db_session() as db:
        assert transition_apply_job(db, apply_job_id, "approve") == ApplyStatus.APPROVED

    with pytest.raises(InvalidTransitionError):
        with get_db_session() as db:
            transition_apply_job(db, apply_job_id, "approve")

    assert _status(fetch_row, apply_job_id) == ApplyStatus.APPROVED


def test_full_lifecycle(make_user, make_apply_job, fetch_row):
    apply_job_id = make_apply_job(make_user())
    for action in ("approve", "activate", "done"):
        with get_db_session() as db:
            transition_apply_job(db, apply_job_id, action)
    assert _status(fetch_row, apply_job_id) == ApplyStatus.DONE


def test_activate_rejected_application_fails(make_user, make_apply_job, fetch_row):
    apply_job_id = make_apply_job(make_user(), status=ApplyStatus.REJECTED)
    with pytest.raises(InvalidTransitionError):
        with get_db_session() as db:
            transition_apply_job(db, apply_job_id, "activate")
    assert _status(fetch_row, apply_job_id) == ApplyStatus.REJECTED


def test_transition_missing_application():
    with pytest.raises(NotFoundError):
        with get_db_session() as db:
            transition_apply_job(db, 999, "approve")


def test_assign_lecturers_activates_approved(make_user, make_apply_job, fetch_row):
    lecturer = make_user()
    examiner = make_user()
    apply_job_id = make_apply_job(make_user(), status=ApplyStatus.APPROVED)

    with get_db_session() as db:
        status = assign_lecturers(db, apply_job_id, lecturer["id"], examiner["id"])

    assert status == ApplyStatus.ACTIVE
    row = fetch_row("SELECT * FROM apply_jobs WHERE id = :id", id=apply_job_id)
    assert row["responsible_lecturer_id"] == lecturer["id"]
    assert row["examiner_lecturer_id"] == examiner["id"]


def test_assign_lecturers_keeps_existing_and_status(make_user, make_apply_job, fetch_row):
    lecturer = make_user()
    apply_job_id = make_apply_job(make_user(), status=ApplyStatus.APPLIED, responsible_lecturer_id=lecturer["id"])
    examiner = make_user()

    with get_db_session() as db:
        status = assign_lecturers(db, apply_job_id, None, examiner["id"])

    assert status == ApplyStatus.APPLIED
    row = fetch_row("SELECT * FROM apply_jobs WHERE id = :id", id=apply_job_id)
    assert row["responsible_lecturer_id"] == lecturer["id"]
    assert row["examiner_lecturer_id"] == examiner["id"]


def test_review_job_wrong_state_returns_false(make_job, fetch_row):
    job_id = make_job(status=JobStatus.IN_REVIEW)
    with get_db_session() as db:
        assert review_job(db, job_id, "close") is False
        assert review_job(db, job_id, "approve") is True
        assert review_job(db, job_id, "close") is True
    assert fetch_row("SELECT status FROM jobs WHERE id = :id", id=job_id)["status"] == JobStatus.CLOSED


def test_review_missing_job():
    with pytest.raises(NotFoundError):
        with get_db_session() as db:
            review_job(db, 404, "approve")


@pytest.mark.parametrize("current, target, action", [
    (ApplyStatus.APPLIED, ApplyStatus.APPROVED, "approve"),
    (ApplyStatus.APPLIED, ApplyStatus.REJECTED, "reject"),
    (ApplyStatus.APPROVED, ApplyStatus.ACTIVE, "activate"),
    (ApplyStatus.ACTIVE, ApplyStatus.DONE, "done"),
])
def test_action_for_single_step(current, target, action):
    assert action_for(current, target) == action


@pytest.mark.parametrize("current, target", [
    (ApplyStatus.APPLIED, ApplyStatus.ACTIVE),
    (ApplyStatus.REJECTED, ApplyStatus.DONE),
    (ApplyStatus.DONE, ApplyStatus.APPLIED),
    (None, ApplyStatus.APPROVED),
])
def test_action_for_rejects_skips(current, target):
    with pytest.raises(InvalidTransitionError):
        action_for(current, target)


def test_concurrent_approve_and_reject_one_wins(make_user, make_apply_job, fetch_row):
    apply_job_id = make_apply_job(make_user())
    barrier = threading.Barrier(2)

    def run(action):
        barrier.wait()
        try:
            with get_db_session() as db:
                return transition_apply_job(db, apply_job_id, action)
        except InvalidTransitionError:
            return None

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(run, ["approve", "reject"]))

    winners = [r for r in results if r is not None]
    assert len(winners) == 1
    assert winners[0] in (ApplyStatus.APPROVED, ApplyStatus.REJECTED)
    assert _status(fetch_row, apply_job_id) == winners[0]


def test_lost_update_asks_for_retry(make_user, make_apply_job, fetch_row, monkeypatch):
    apply_job_id = make_apply_job(make_user())
    # the guarded update misses although the re-read still shows Melamar
    monkeypatch.setattr(workflow, "_conditional_update", lambda *args: False)

    with pytest.raises(InvalidTransitionError, match="retry"):
        with get_db_session() as db:
            transition_apply_job(db, apply_job_id, "approve")

    assert _status(fetch_row, apply_job_id) == ApplyStatus.APPLIED
