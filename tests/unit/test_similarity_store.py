"""Unit tests for the SimilarityStore.

Vector queries are checked by compiling them for PostgreSQL; lexical queries
run for real against SQLite.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from smartsearch.models import EntityType
from smartsearch.search import SimilarityStore, StoreQueryError
from smartsearch.search.store import escape_like


def compile_pg(query) -> str:
    return str(query.compile(dialect=postgresql.dialect()))


class TestVectorQuery:
    """Test the generated pgvector SQL."""

    def test_item_query_uses_cosine_distance_and_visibility(self):
        sql = compile_pg(SimilarityStore.build_vector_query(EntityType.ITEM, [0.1] * 8, 20))

        select_clause, order_clause = sql.split("ORDER BY")
        assert "items.embedding <=>" in select_clause
        assert "AS score" in select_clause
        assert "items.embedding IS NOT NULL" in select_clause
        assert "items.is_active IS true" in select_clause
        assert "items.embedding <=>" in order_clause
        assert "LIMIT" in order_clause

    def test_shop_query_requires_approval(self):
        sql = compile_pg(SimilarityStore.build_vector_query(EntityType.SHOP, [0.1] * 8, 5))

        assert "shops.is_approved IS true" in sql
        assert "shops.embedding IS NOT NULL" in sql

    def test_category_query(self):
        sql = compile_pg(SimilarityStore.build_vector_query(EntityType.CATEGORY, [0.1] * 8, 5))

        assert "categories.is_active IS true" in sql
        assert "FROM categories" in sql

    def test_unsupported_on_sqlite_raises_store_query_error(self, db_session, make_item):
        make_item(title="Oak table")
        store = SimilarityStore(db_session)

        with pytest.raises(StoreQueryError) as exc:
            store.search_vector(EntityType.ITEM, [0.1] * 8, 10)

        assert exc.value.entity_type == EntityType.ITEM

    def test_rows_become_hits(self):
        entity = Mock(id=7, title="Oak table")
        session = Mock()
        session.execute.return_value.all.return_value = [(entity, 0.87)]

        hits = SimilarityStore(session).search_vector(EntityType.ITEM, [0.1] * 8, 10)

        assert len(hits) == 1
        assert hits[0].id == 7
        assert hits[0].title == "Oak table"
        assert hits[0].score == pytest.approx(0.87)
        assert hits[0].entity is entity


class TestLexicalSearch:
    """Test substring matching and ordering on SQLite."""

    def test_matches_title_case_insensitively(self, db_session, make_item):
        make_item(title="Gaming LAPTOP")
        make_item(title="Desk lamp")

        hits = SimilarityStore(db_session).search_lexical(EntityType.ITEM, "laptop", 10)

        assert [h.title for h in hits] == ["Gaming LAPTOP"]
        assert hits[0].match_type == "contains"

    def test_fixed_score(self, db_session, make_item):
        make_item(title="Laptop")

        hits = SimilarityStore(db_session, lexical_score=0.6).search_lexical(EntityType.ITEM, "laptop", 10)

        assert hits[0].score == 0.6

    def test_description_match(self, db_session, make_item):
        make_item(title="Stand", description="Aluminium stand for any laptop")

        hits = SimilarityStore(db_session).search_lexical(EntityType.ITEM, "laptop", 10)

        assert hits[0].match_type == "description"

    def test_exact_then_prefix_then_contains(self, db_session, make_item):
        now = datetime.now(timezone.utc)
        make_item(title="Old laptop", created_at=now)
        make_item(title="Laptop bag", created_at=now - timedelta(days=2))
        make_item(title="laptop", created_at=now - timedelta(days=5))

        hits = SimilarityStore(db_session).search_lexical(EntityType.ITEM, "Laptop", 10)

        assert [h.title for h in hits] == ["laptop", "Laptop bag", "Old laptop"]
        assert [h.match_type for h in hits] == ["exact", "prefix", "contains"]

    def test_newest_first_within_match_type(self, db_session, make_item):
        now = datetime.now(timezone.utc)
        make_item(title="Red laptop", created_at=now - timedelta(days=3))
        make_item(title="Blue laptop", created_at=now)

        hits = SimilarityStore(db_session).search_lexical(EntityType.ITEM, "laptop", 10)

        assert [h.title for h in hits] == ["Blue laptop", "Red laptop"]

    def test_hidden_rows_excluded(self, db_session, make_shop, make_item):
        hidden_shop = make_shop(name="Laptop shop", is_approved=False)
        make_item(title="Laptop", shop=hidden_shop, is_active=False)
        store = SimilarityStore(db_session)

        assert store.search_lexical(EntityType.ITEM, "laptop", 10) == []
        assert store.search_lexical(EntityType.SHOP, "laptop", 10) == []

    def test_category_matches_slug(self, db_session, make_category):
        make_category(name="Computers", slug="laptops-and-pcs")

        hits = SimilarityStore(db_session).search_lexical(EntityType.CATEGORY, "laptop", 10)

        assert [h.title for h in hits] == ["Computers"]

    def test_limit(self, db_session, make_item):
        for i in range(5):
            make_item(title=f"Laptop {i}")

        assert len(SimilarityStore(db_session).search_lexical(EntityType.ITEM, "laptop", 3)) == 3

    def test_wildcards_match_literally(self, db_session, make_item):
        make_item(title="100% cotton shirt")
        make_item(title="1000 cotton threads")

        hits = SimilarityStore(db_session).search_lexical(EntityType.ITEM, "100%", 10)

        assert [h.title for h in hits] == ["100% cotton shirt"]

    def test_blank_query_returns_nothing(self, db_session, make_item):
        make_item(title="Laptop")

        assert SimilarityStore(db_session).search_lexical(EntityType.ITEM, "  ", 10) == []

    def test_database_error_wrapped(self):
        session = Mock()
        session.execute.side_effect = OperationalError("SELECT", {}, Exception("connection lost"))

        with pytest.raises(StoreQueryError):
            SimilarityStore(session).search_lexical(EntityType.SHOP, "laptop", 10)

        session.rollback.assert_called_once()


class TestEscapeLike:
    def test_escapes_wildcards_and_backslash(self):
        assert escape_like("50%_off\\") == "50\\%\\_off\\\\"
