"""Tests for the reindex Celery tasks and the single-flight guard.

Tasks run eagerly (CELERY_TASK_ALWAYS_EAGER) against the test database.
REDIS_URL points at a closed port, so the guard uses its local lock set
unless a fake Redis client is handed in.
"""

import pytest

from smartsearch.dependencies import set_embedding_generator
from smartsearch.models import Category, Item, Shop
from smartsearch.workers.base import LOCK_KEY_PREFIX, ReindexGuard, get_redis_client
from smartsearch.workers.reindex_worker import SCOPE_ALL, reindex_all_task, reindex_type_task


class FakeRedis:
    """Just enough of the redis client for SET NX EX locks."""

    def __init__(self, fail=False):
        self.data = {}
        self.ttls = {}
        self.fail = fail

    def set(self, key, value, nx=False, ex=None):
        if self.fail:
            raise ConnectionError("redis down")
        if nx and key in self.data:
            return None
        self.data[key] = value
        self.ttls[key] = ex
        return True

    def get(self, key):
        return self.data.get(key)

    def delete(self, key):
        self.data.pop(key, None)


@pytest.fixture
def use_generator(generator):
    set_embedding_generator(generator)
    yield generator
    set_embedding_generator(None)


class TestReindexGuard:
    """Test ReindexGuard locking."""

    def test_redis_lock_single_flight(self):
        redis = FakeRedis()
        first = ReindexGuard(redis, ttl_seconds=60)
        second = ReindexGuard(redis, ttl_seconds=60)

        assert first.acquire("ITEM") is True
        assert second.acquire("ITEM") is False
        assert second.acquire("SHOP") is True
        assert redis.ttls[LOCK_KEY_PREFIX + "ITEM"] == 60

        first.release("ITEM")
        second.release("SHOP")

        assert redis.data == {}

    def test_release_leaves_foreign_lock(self):
        redis = FakeRedis()
        guard = ReindexGuard(redis)
        guard.acquire("ITEM")
        # Lock expired and was taken over by another worker
        redis.data[LOCK_KEY_PREFIX + "ITEM"] = "someone-else"

        guard.release("ITEM")

        assert redis.data[LOCK_KEY_PREFIX + "ITEM"] == "someone-else"

    def test_local_lock_without_redis(self):
        first = ReindexGuard(None)
        second = ReindexGuard(None)

        assert first.acquire("CATEGORY") is True
        try:
            assert second.acquire("CATEGORY") is False
        finally:
            first.release("CATEGORY")

        assert second.acquire("CATEGORY") is True
        second.release("CATEGORY")

    def test_redis_error_falls_back_to_local_lock(self):
        guard = ReindexGuard(FakeRedis(fail=True))

        assert guard.acquire("SHOP") is True
        assert guard.redis is None
        assert ReindexGuard(None).acquire("SHOP") is False

        guard.release("SHOP")
        assert ReindexGuard._local_locks == set()

    def test_unreachable_redis_gives_no_client(self):
        assert get_redis_client() is None


class TestReindexTasks:
    """Test the reindex tasks end to end in eager mode."""

    def test_reindex_type(self, db_session, use_generator, make_category):
        make_category(name="Computers")
        make_category(name="Lighting")

        result = reindex_type_task.apply(args=["CATEGORY"]).get()

        assert result["status"] == "completed"
        assert result["scope"] == "CATEGORY"
        assert result["counts"] == {"CATEGORY": 2}
        assert result["total"] == 2
        assert result["duration_ms"] >= 0
        db_session.expire_all()
        assert all(c.embedding is not None for c in db_session.query(Category))

    def test_reindex_all(self, db_session, use_generator, make_category, make_shop, make_item):
        category = make_category(name="Computers")
        shop = make_shop(name="Tech corner", categories=[category])
        make_item(title="Gaming laptop", shop=shop)

        result = reindex_all_task.apply().get()

        assert result["status"] == "completed"
        assert result["scope"] == SCOPE_ALL
        assert result["counts"] == {"ITEM": 1, "SHOP": 1, "CATEGORY": 1}
        assert result["total"] == 3
        db_session.expire_all()
        assert db_session.query(Item).one().embedding is not None
        assert db_session.query(Shop).one().embedding is not None

    def test_skipped_while_scope_running(self, db_session, use_generator, provider, make_category):
        make_category(name="Computers")
        holder = ReindexGuard(None)
        assert holder.acquire("CATEGORY")

        try:
            result = reindex_type_task.apply(args=["CATEGORY"]).get()
        finally:
            holder.release("CATEGORY")

        assert result["status"] == "skipped"
        assert result["scope"] == "CATEGORY"
        assert provider.calls == []

    def test_lock_released_after_run(self, db_session, use_generator):
        reindex_type_task.apply(args=["ITEM"]).get()

        assert ReindexGuard._local_locks == set()

    def test_unknown_type_fails(self, db_session, use_generator):
        result = reindex_type_task.apply(args=["USER"])

        assert result.failed()
        assert isinstance(result.result, ValueError)
