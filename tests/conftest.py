"""
Shared fixtures: an in-memory Supabase stand-in and an authenticated client.

The fake covers only the query-builder calls the worker makes
(select/eq/in_/order/limit, insert, update, storage upload/sign, auth).
"""

import uuid
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from listing_worker.main import app
from listing_worker import metrics
from listing_worker import provider_factory
from listing_worker.pipeline import project_service
from listing_worker.pipeline import storage


USER_ID = "user-1"
OTHER_USER_ID = "user-2"
TOKENS = {"token-user-1": USER_ID, "token-user-2": OTHER_USER_ID}


class FakeQuery:
    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.filters = []
        self.order_by = None
        self.desc = False
        self.max_rows = None
        self.op = "select"
        self.payload = None

    def select(self, *_):
        self.op = "select"
        return self

    def insert(self, payload):
        self.op = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.op = "update"
        self.payload = payload
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def order(self, column, desc=False):
        self.order_by = column
        self.desc = desc
        return self

    def limit(self, n):
        self.max_rows = n
        return self

    def _matching(self):
        return [r for r in self.db.tables.setdefault(self.table, []) if all(f(r) for f in self.filters)]

    def execute(self):
        if self.table in self.db.fail_tables:
            raise RuntimeError(f"{self.table} unavailable")

        if self.op == "insert":
            rows = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for row in rows:
                row = dict(row)
                row.setdefault("id", str(uuid.uuid4()))
                row.setdefault("created_at", f"2026-01-01T00:00:{len(self.db.tables.get(self.table, [])):02d}")
                self.db.tables.setdefault(self.table, []).append(row)
                inserted.append(dict(row))
            return SimpleNamespace(data=inserted)

        if self.op == "update":
            updated = []
            for row in self._matching():
                row.update(self.payload)
                updated.append(dict(row))
            return SimpleNamespace(data=updated)

        rows = self._matching()
        if self.order_by:
            rows = sorted(rows, key=lambda r: r.get(self.order_by) or 0, reverse=self.desc)
        if self.max_rows is not None:
            rows = rows[: self.max_rows]
        return SimpleNamespace(data=[dict(r) for r in rows])


class FakeBucket:
    def __init__(self, db, name):
        self.db = db
        self.name = name

    def create_signed_url(self, path, expires_in):
        if path in self.db.unsignable:
            return {"error": "not found"}
        return {"signedURL": f"https://sb.test/signed/{self.name}/{path}?ttl={expires_in}"}

    def upload(self, path, data, file_options=None):
        self.db.uploads[(self.name, path)] = data
        return SimpleNamespace(path=path)


class FakeStorage:
    def __init__(self, db):
        self.db = db

    def from_(self, bucket):
        return FakeBucket(self.db, bucket)


class FakeAuth:
    def get_user(self, token):
        if token not in TOKENS:
            raise RuntimeError("invalid JWT")
        return SimpleNamespace(user=SimpleNamespace(id=TOKENS[token]))


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.uploads = {}
        self.unsignable = set()
        self.fail_tables = set()
        self.storage = FakeStorage(self)
        self.auth = FakeAuth()

    def table(self, name):
        return FakeQuery(self, name)

    def rows(self, table, **match):
        return [r for r in self.tables.get(table, []) if all(r.get(k) == v for k, v in match.items())]


@pytest.fixture
def fake_sb(monkeypatch):
    fake = FakeSupabase()
    monkeypatch.setattr(project_service, "_service_client", fake)
    monkeypatch.setattr(storage, "SUPABASE_URL", "https://sb.test")
    monkeypatch.setattr(provider_factory, "DEFAULT_PROVIDER", "fal")
    return fake


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def client(fake_sb):
    return TestClient(app, headers={"Authorization": "Bearer token-user-1"})


def seed_project(fake, n_scenes=3, user_id=USER_ID, video_format="16:9", status="created"):
    """Project with n included scenes, each backed by an uploaded photo."""
    project_id = str(uuid.uuid4())
    fake.tables.setdefault("projects", []).append({
        "id": project_id,
        "user_id": user_id,
        "status": status,
        "video_format": video_format,
    })
    for i in range(n_scenes):
        asset_id = f"asset-{project_id[:8]}-{i}"
        fake.tables.setdefault("assets", []).append({
            "id": asset_id,
            "project_id": project_id,
            "storage_path_original": f"{user_id}/{project_id}/photo_{i}.jpg",
        })
        fake.tables.setdefault("storyboard_scenes", []).append({
            "id": f"scene-{project_id[:8]}-{i}",
            "project_id": project_id,
            "asset_id": asset_id,
            "scene_order": i,
            "include": True,
            "motion_template": "push_in",
        })
    return project_id


def seed_render(fake, project_id, render_type, status, **extra):
    row = {
        "id": str(uuid.uuid4()),
        "project_id": project_id,
        "type": render_type,
        "status": status,
        "created_at": f"2026-01-01T00:01:{len(fake.tables.get('renders', [])):02d}",
    }
    row.update(extra)
    fake.tables.setdefault("renders", []).append(row)
    return row
