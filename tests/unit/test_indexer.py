"""Unit tests for the Indexer and entity change hooks (SQLite-backed)."""

import pytest

from smartsearch.database import SessionLocal
from smartsearch.domain.ai import EmbeddingGenerationError
from smartsearch.models import Category, EntityType, Item, Shop
from smartsearch.services.indexing import EntityChangeHooks, Indexer

from conftest import deterministic_vector


def as_list(vector):
    return None if vector is None else [float(x) for x in vector]


class TestCanonicalText:
    """Test text derivation from entity fields."""

    def test_item_uses_shops_first_category(self, db_session, generator, make_category, make_shop, make_item):
        decor = make_category(name="Decor", position=2)
        furniture = make_category(name="Furniture", position=1)
        shop = make_shop(name="Oak & Co", categories=[decor, furniture])
        item = make_item(title="Oak table", shop=shop, description="Solid wood", tags=["wood"])

        text = Indexer(db_session, generator).canonical_text(item)

        assert text == "Oak table. Oak table. Category: Furniture. Tags: wood. wood. Solid wood"

    def test_item_without_category(self, db_session, generator, make_item):
        item = make_item(title="Oak table")

        assert Indexer(db_session, generator).canonical_text(item) == "Oak table. Oak table."

    def test_shop_text(self, db_session, generator, make_shop):
        shop = make_shop(name="Oak & Co", description="Furniture", owner_name="Anna")

        assert Indexer(db_session, generator).canonical_text(shop) == (
            "Oak & Co. Oak & Co. Furniture. Owner: Anna"
        )

    def test_category_text(self, db_session, generator, make_category):
        category = make_category(name="Furniture", slug="furniture")

        assert Indexer(db_session, generator).canonical_text(category) == (
            "Furniture. Furniture. Type: furniture"
        )

    def test_unknown_entity_rejected(self, db_session, generator):
        with pytest.raises(TypeError):
            Indexer(db_session, generator).canonical_text(object())


class TestIndex:
    """Test single-entity indexing."""

    def test_index_writes_vector(self, db_session, generator, make_category):
        category = make_category(name="Furniture", slug="furniture")

        assert Indexer(db_session, generator).index(category) is True

        db_session.expire_all()
        stored = db_session.get(Category, category.id)
        assert as_list(stored.embedding) == deterministic_vector("Furniture. Furniture. Type: furniture")

    def test_empty_text_is_noop(self, db_session, generator, provider, make_category):
        category = make_category(name="Furniture", slug="furniture")
        # Blank the fields without touching the database
        category.name = "  "
        category.slug = ""

        assert Indexer(db_session, generator).index(category) is False
        assert provider.calls == []
        assert category.embedding is None

    def test_none_entity_is_noop(self, db_session, generator):
        assert Indexer(db_session, generator).index(None) is False

    def test_reindex_is_idempotent_and_cached(self, db_session, generator, provider, make_item):
        item = make_item(title="Oak table")
        indexer = Indexer(db_session, generator)

        indexer.index(item)
        first = as_list(db_session.get(Item, item.id).embedding)
        indexer.index(item)
        db_session.expire_all()
        second = as_list(db_session.get(Item, item.id).embedding)

        assert first == second
        assert len(provider.calls) == 1
        assert generator.cache.stats().hit_count == 1

    def test_generation_failure_propagates_and_keeps_old_vector(self, db_session, generator, provider, make_item):
        item = make_item(title="Oak table")
        indexer = Indexer(db_session, generator)
        indexer.index(item)
        original = as_list(item.embedding)

        item.title = "Walnut table"
        db_session.commit()
        provider.fail_times = 10

        with pytest.raises(EmbeddingGenerationError):
            indexer.index(item)

        db_session.expire_all()
        assert as_list(db_session.get(Item, item.id).embedding) == original

    def test_index_by_id(self, db_session, generator, make_shop):
        shop = make_shop(name="Oak & Co")
        indexer = Indexer(db_session, generator)

        assert indexer.index_by_id(EntityType.SHOP, shop.id) is True
        assert indexer.index_by_id("SHOP", 9999) is False


class TestBulkIndexing:
    """Test bulk indexing resilience and reporting."""

    def test_failures_are_skipped(self, db_session, generator, provider, make_shop, make_item):
        shop = make_shop(name="Bulk shop")
        for i in range(10):
            title = f"broken item {i}" if i in (2, 5, 8) else f"item {i}"
            make_item(title=title, shop=shop)
        provider.fail_on = ["broken"]

        count = Indexer(db_session, generator).index_all_of_type(EntityType.ITEM)

        assert count == 7
        db_session.expire_all()
        indexed = [i.title for i in db_session.query(Item).order_by(Item.id) if i.embedding is not None]
        assert len(indexed) == 7
        assert not any(title.startswith("broken") for title in indexed)

    def test_blank_entities_not_counted(self, db_session, generator, provider, make_category):
        make_category(name="Furniture", slug="furniture")
        make_category(name="  ", slug=" ")

        count = Indexer(db_session, generator).index_all_of_type(EntityType.CATEGORY)

        assert count == 1
        assert len(provider.calls) == 1

    def test_per_type_conveniences(self, db_session, generator, make_category, make_shop, make_item):
        category = make_category(name="Furniture")
        shop = make_shop(name="Oak & Co", categories=[category])
        make_item(title="Oak table", shop=shop)
        make_item(title="Oak chair", shop=shop)
        indexer = Indexer(db_session, generator)

        assert indexer.index_all_items() == 2
        assert indexer.index_all_shops() == 1
        assert indexer.index_all_categories() == 1

    def test_reindex_all_reports_per_type_counts(self, db_session, generator, make_category, make_shop, make_item):
        category = make_category(name="Furniture")
        shop = make_shop(name="Oak & Co", categories=[category])
        make_item(title="Oak table", shop=shop)

        report = Indexer(db_session, generator).reindex_all()

        assert report.counts == {"ITEM": 1, "SHOP": 1, "CATEGORY": 1}
        assert report.total == 3
        assert report.duration_ms >= 0

    def test_index_all_returns_total(self, db_session, generator, make_category):
        make_category(name="Furniture")
        make_category(name="Lighting")

        assert Indexer(db_session, generator).index_all() == 2

    def test_embedding_coverage(self, db_session, generator, make_category):
        indexed = make_category(name="Furniture")
        make_category(name="Lighting")
        indexer = Indexer(db_session, generator)
        indexer.index(indexed)

        coverage = {entry.entity_type: entry for entry in indexer.embedding_coverage()}

        assert coverage[EntityType.CATEGORY].total == 2
        assert coverage[EntityType.CATEGORY].indexed == 1
        assert coverage[EntityType.CATEGORY].coverage_percent == 50.0
        assert coverage[EntityType.ITEM].total == 0
        assert coverage[EntityType.ITEM].coverage_percent == 0.0


class TestEntityChangeHooks:
    """Test that hooks index post-commit and never raise."""

    def test_created_hook_indexes(self, db_session, generator, make_shop):
        shop = make_shop(name="Oak & Co")
        hooks = EntityChangeHooks(Indexer(db_session, generator))

        assert hooks.on_entity_created(shop) is True
        db_session.expire_all()
        assert db_session.get(Shop, shop.id).embedding is not None

    def test_updated_hook_reflects_new_text(self, db_session, generator, make_category):
        category = make_category(name="Furniture", slug="furniture")
        hooks = EntityChangeHooks(Indexer(db_session, generator))
        hooks.on_entity_created(category)

        category.name = "Home furniture"
        db_session.commit()
        hooks.on_entity_updated(category)

        db_session.expire_all()
        assert as_list(db_session.get(Category, category.id).embedding) == deterministic_vector(
            "Home furniture. Home furniture. Type: furniture"
        )

    def test_hook_swallows_provider_failure(self, db_session, generator, provider, make_shop):
        shop = make_shop(name="Oak & Co")
        provider.fail_times = 10
        hooks = EntityChangeHooks(Indexer(db_session, generator))

        assert hooks.on_entity_status_changed(shop) is False

    def test_hook_ignores_none(self, db_session, generator):
        assert EntityChangeHooks(Indexer(db_session, generator)).on_entity_updated(None) is False

    def test_hook_persists_entity_from_callers_session(self, db_session, generator):
        service_session = SessionLocal()
        try:
            category = Category(name="Lighting", slug="lighting")
            service_session.add(category)
            service_session.commit()
            category_id = category.id

            hooks = EntityChangeHooks(Indexer(db_session, generator))
            assert hooks.on_entity_created(category) is True
        finally:
            service_session.close()

        db_session.expire_all()
        assert db_session.get(Category, category_id).embedding is not None

    def test_hook_persists_detached_entity(self, db_session, generator, make_category):
        category = make_category(name="Garden", slug="garden")
        db_session.expunge(category)

        assert EntityChangeHooks(Indexer(db_session, generator)).on_entity_updated(category) is True

        db_session.expire_all()
        assert db_session.get(Category, category.id).embedding is not None
