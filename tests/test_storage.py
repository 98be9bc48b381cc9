"""
Unit Tests for Session Storage
==============================
Backends and the per-mode persistence policy.
"""

import fnmatch
import json

import pytest

from unigen_auth.config import AuthConfig
from unigen_auth.models import Mode, Session
from unigen_auth.storage import (
    ACTIVE_MODE_KEY,
    FileStorage,
    MemoryStorage,
    RedisStorage,
    SessionStorePolicy,
)

NORMAL = Session(subject_id="3", display_name="Kim", mode=Mode.NORMAL, credential_token="n1")
SENIOR = Session(subject_id="1", display_name="Park", mode=Mode.SENIOR, credential_token="t1")


class FakeRedis:
    """The handful of Redis commands RedisStorage uses, returning bytes."""

    def __init__(self):
        self.data = {}
        self.calls = []

    def get(self, key):
        value = self.data.get(key)
        return value.encode() if value is not None else None

    def set(self, key, value):
        self.data[key] = value

    def pipeline(self):
        return FakePipeline(self)

    def delete(self, *keys):
        for key in keys:
            self.data.pop(key, None)

    def scan_iter(self, match="*"):
        return [k for k in list(self.data) if fnmatch.fnmatch(k, match)]


class FakePipeline:
    """Queues SET commands and applies them together on execute."""

    def __init__(self, redis):
        self.redis = redis
        self.queued = {}

    def set(self, key, value):
        self.queued[key] = value

    def execute(self):
        self.redis.calls.append(("pipeline", sorted(self.queued)))
        self.redis.data.update(self.queued)
        return [True] * len(self.queued)


class TestBackends:
    """Tests for individual storage scopes."""

    def test_memory_storage(self):
        storage = MemoryStorage()
        storage.set("a", "1")

        assert storage.get("a") == "1"
        storage.delete("a")
        assert storage.get("a") is None
        assert not storage.durable

    def test_file_storage_survives_new_instance(self, tmp_path):
        path = tmp_path / "nested" / "session.json"
        FileStorage(str(path)).set("normal:token", "n1")

        assert FileStorage(str(path)).get("normal:token") == "n1"

    def test_file_storage_sees_other_writers(self, tmp_path):
        path = str(tmp_path / "session.json")
        one, two = FileStorage(path), FileStorage(path)

        one.set("k", "v1")
        two.set("k", "v2")

        assert one.get("k") == "v2"

    def test_file_storage_unreadable_file(self, tmp_path):
        path = tmp_path / "session.json"
        path.write_text("{not json")

        assert FileStorage(str(path)).get("k") is None

    def test_redis_storage_namespaces_and_decodes(self):
        fake = FakeRedis()
        storage = RedisStorage(fake, namespace="test")

        storage.set("normal:token", "n1")

        assert fake.data == {"test:normal:token": "n1"}
        assert storage.get("normal:token") == "n1"

    def test_redis_clear_only_touches_namespace(self):
        fake = FakeRedis()
        fake.data["other:key"] = "keep"
        storage = RedisStorage(fake, namespace="test")
        storage.set("a", "1")
        storage.set("b", "2")

        storage.clear()

        assert fake.data == {"other:key": "keep"}

    def test_file_storage_set_many_is_one_write(self, tmp_path, monkeypatch):
        storage = FileStorage(str(tmp_path / "session.json"))
        storage.set("senior:token", "keep")
        writes = []
        original = storage._write
        monkeypatch.setattr(storage, "_write", lambda data: (writes.append(dict(data)), original(data)))

        storage.set_many({"normal:token": "n1", "normal:user": "{}"})
        storage.delete_many(["normal:token", "normal:user", "missing"])

        assert writes == [
            {"senior:token": "keep", "normal:token": "n1", "normal:user": "{}"},
            {"senior:token": "keep"},
        ]

    def test_redis_set_many_is_one_pipeline(self):
        fake = FakeRedis()
        storage = RedisStorage(fake, namespace="test")

        storage.set_many({"normal:token": "n1", "normal:user": "{}"})

        assert fake.calls == [("pipeline", ["test:normal:token", "test:normal:user"])]
        assert storage.get("normal:user") == "{}"


class TestSessionStorePolicy:
    """Tests for mode-keyed persistence."""

    def test_normal_is_durable(self, store, config):
        store.persist(NORMAL)

        reopened = SessionStorePolicy(durable=FileStorage(config.durable_store_path), tab=MemoryStorage())
        assert reopened.load(Mode.NORMAL) == NORMAL

    def test_senior_is_tab_scoped(self, store, config):
        store.persist(SENIOR)

        assert store.scope_for(Mode.SENIOR).get("senior:token") == "t1"
        assert FileStorage(config.durable_store_path).get("senior:token") is None

        store.close_context()
        assert store.load(Mode.SENIOR) is None

    def test_modes_are_independent(self, store):
        store.persist(NORMAL)
        store.persist(SENIOR)

        store.clear(Mode.SENIOR)

        assert store.load(Mode.SENIOR) is None
        assert store.load(Mode.NORMAL) == NORMAL

    def test_persist_replaces_previous(self, store):
        store.persist(NORMAL)
        store.persist(Session("4", "Choi", Mode.NORMAL, "n2"))

        assert store.load(Mode.NORMAL).credential_token == "n2"

    def test_profile_record_holds_no_secrets(self, store, config):
        store.persist(NORMAL)

        with open(config.durable_store_path, encoding="utf-8") as f:
            data = json.load(f)
        assert json.loads(data["normal:user"]) == {"id": "3", "name": "Kim"}
        assert set(data) == {"normal:token", "normal:user"}

    def test_active_session_prefers_tab_selection(self, store):
        store.persist(SENIOR)
        store.persist(NORMAL)

        assert store.active_mode() is Mode.NORMAL
        assert store.active_session() == NORMAL

    def test_active_session_falls_back(self, store):
        store.persist(NORMAL)
        store.close_context()

        assert store.scope_for(Mode.SENIOR).get(ACTIVE_MODE_KEY) is None
        assert store.active_session() == NORMAL

    def test_invalidate(self, store):
        store.persist(NORMAL)
        store.invalidate(Mode.NORMAL)

        assert store.active_session() is None

    def test_bearer_headers(self, store):
        assert store.bearer_headers(Mode.NORMAL) == {}

        store.persist(NORMAL)

        assert store.bearer_headers(Mode.NORMAL) == {"Authorization": "Bearer n1"}

    def test_corrupt_profile_keeps_token(self, store):
        store.persist(NORMAL)
        store.scope_for(Mode.NORMAL).set("normal:user", "not json")

        session = store.load(Mode.NORMAL)
        assert session.credential_token == "n1"
        assert session.display_name == ""

    def test_from_config_file(self, config):
        policy = SessionStorePolicy.from_config(config)

        assert isinstance(policy.scope_for(Mode.NORMAL), FileStorage)
        assert isinstance(policy.scope_for(Mode.SENIOR), MemoryStorage)

    def test_from_config_redis(self, tmp_path):
        config = AuthConfig(redis_url="redis://localhost:6379/0", durable_store_path=str(tmp_path / "s.json"))

        policy = SessionStorePolicy.from_config(config)

        assert isinstance(policy.scope_for(Mode.NORMAL), RedisStorage)

    def test_persist_writes_token_and_profile_together(self, store, config):
        other_tab = SessionStorePolicy(durable=FileStorage(config.durable_store_path), tab=MemoryStorage())
        store.persist(NORMAL)
        other_tab.persist(Session("4", "Choi", Mode.NORMAL, "n2"))

        assert store.load(Mode.NORMAL) == Session("4", "Choi", Mode.NORMAL, "n2")

    def test_persist_to_redis_is_one_pipeline(self):
        fake = FakeRedis()
        store = SessionStorePolicy(durable=RedisStorage(fake, namespace="test"), tab=MemoryStorage())

        store.persist(NORMAL)

        assert fake.calls == [("pipeline", ["test:normal:token", "test:normal:user"])]
        assert store.load(Mode.NORMAL) == NORMAL
