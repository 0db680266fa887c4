import itertools
import os
import tempfile

# Settings are read once at import time, so point them at a scratch SQLite
# database and upload directory before anything from mbkm is imported.
_TMP_DIR = tempfile.mkdtemp(prefix="mbkm-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP_DIR, "uploads")
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import Callable, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text

from mbkm.core.auth import create_access_token, hash_password
from mbkm.core.permissions import ROLE_TITLES, RoleId
from mbkm.db.postgres import engine
from mbkm.db.schema import create_all, drop_all, seed_roles
from mbkm.main import app

PASSWORD = "secret123"
_PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture(autouse=True)
def database() -> Iterator[None]:
    drop_all(engine)
    create_all(engine)
    seed_roles(engine)
    yield


@pytest.fixture()
def client() -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


def _insert(table: str, values: dict) -> int:
    columns = ", ".join(values)
    params = ", ".join(f":{c}" for c in values)
    with engine.begin() as conn:
        return conn.execute(
            text(f"INSERT INTO {table} ({columns}) VALUES ({params}) RETURNING id"), values
        ).scalar_one()


@pytest.fixture()
def make_user() -> Callable[..., dict]:
    counter = itertools.count(1)

    def _make(role_id: RoleId = RoleId.STUDENT, **fields) -> dict:
        n = next(counter)
        values = {
            "name": f"User {n}",
            "email": f"user{n}@example.com",
            "username": f"user{n}",
            "password": _PASSWORD_HASH,
            "role": ROLE_TITLES[role_id],
        }
        values.update(fields)
        user_id = _insert("users", values)
        with engine.begin() as conn:
            conn.execute(
                text("INSERT INTO role_user (user_id, role_id) VALUES (:uid, :rid)"),
                {"uid": user_id, "rid": int(role_id)},
            )
        return {"id": user_id, **values}

    return _make


@pytest.fixture()
def auth_header() -> Callable[[dict], dict]:
    def _header(user: dict) -> dict:
        token = create_access_token({"id": user["id"], "username": user["username"], "role": user["role"]})
        return {"Authorization": f"Bearer {token}"}

    return _header


@pytest.fixture()
def make_job() -> Callable[..., int]:
    def _make(status: str = "Tersedia", **fields) -> int:
        values = {"title": "Backend Intern", "status": status}
        values.update(fields)
        return _insert("jobs", values)

    return _make


@pytest.fixture()
def make_apply_job(make_job) -> Callable[..., int]:
    """Insert an application for `user` on a fresh job, linked both ways."""
    def _make(user: dict, status: str = "Melamar", **fields) -> int:
        job_id = make_job()
        values = {"job_user": f"job-user-{job_id}", "status": status, "created_by_id": user["id"]}
        values.update(fields)
        apply_job_id = _insert("apply_jobs", values)
        with engine.begin() as conn:
            conn.execute(
                text("INSERT INTO apply_job_user (apply_job_id, user_id) VALUES (:aid, :uid)"),
                {"aid": apply_job_id, "uid": user["id"]},
            )
            conn.execute(
                text("INSERT INTO apply_job_job (apply_job_id, job_id) VALUES (:aid, :jid)"),
                {"aid": apply_job_id, "jid": job_id},
            )
        return apply_job_id

    return _make


@pytest.fixture()
def fetch_row() -> Callable[..., dict]:
    def _fetch(sql: str, **params):
        with engine.connect() as conn:
            row = conn.execute(text(sql), params).mappings().first()
        return dict(row) if row is not None else None

    return _fetch
