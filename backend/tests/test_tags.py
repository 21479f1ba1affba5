"""Tests for TagStore - hierarchy, uniqueness and listing."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from tagkeep.core.errors import CycleDetectedError, DuplicateTagError, EmptyNameError, NotFoundError
from tagkeep.core.patch import UNSET
from tagkeep.db.models import DEFAULT_COLOR, DEFAULT_FONT_COLOR, FileTag, Tag, TagListMode
from tagkeep.services.associations import AssociationStore
from tagkeep.services.tags import TagStore

from conftest import create_test_file


@pytest.fixture
def store(db_session):
    return TagStore(db_session)


# =============================================================================
# Create
# =============================================================================


class TestCreateTag:
    """Tests for TagStore.create."""

    async def test_create_with_defaults(self, store):
        tag = await store.create("  Travel  ")

        assert tag.id is not None
        assert tag.name == "Travel"
        assert tag.color == DEFAULT_COLOR
        assert tag.font_color == DEFAULT_FONT_COLOR
        assert tag.parent_id is None
        assert tag.usage_count == 0

    async def test_blank_name_rejected(self, store):
        with pytest.raises(EmptyNameError):
            await store.create("   ")

    async def test_duplicate_root_name_rejected(self, store):
        await store.create("music")
        with pytest.raises(DuplicateTagError):
            await store.create("music")

    async def test_same_name_under_different_parents(self, store):
        rock = await store.create("rock")
        jazz = await store.create("jazz")

        a = await store.create("favorites", parent_id=rock.id)
        b = await store.create("favorites", parent_id=jazz.id)

        assert a.id != b.id

    async def test_duplicate_child_name_rejected(self, store):
        parent = await store.create("photos")
        await store.create("2024", parent_id=parent.id)
        with pytest.raises(DuplicateTagError):
            await store.create("2024", parent_id=parent.id)

    async def test_unknown_parent_rejected(self, store):
        with pytest.raises(NotFoundError):
            await store.create("orphan", parent_id=404)

    async def test_deleted_name_can_be_reused(self, store):
        old = await store.create("draft")
        await store.delete(old.id)

        new = await store.create("draft")
        assert new.id != old.id


# =============================================================================
# Modify
# =============================================================================


class TestModifyTag:
    """Tests for tri-state TagStore.modify."""

    async def test_unset_fields_are_unchanged(self, store):
        tag = await store.create("work", color="#FF0000")

        updated = await store.modify(tag.id, name="office")

        assert updated.name == "office"
        assert updated.color == "#FF0000"
        assert updated.font_color == DEFAULT_FONT_COLOR

    async def test_none_clears_field(self, store):
        tag = await store.create("work", color="#FF0000")

        updated = await store.modify(tag.id, color=None, font_color=UNSET)

        assert updated.color is None
        assert updated.font_color == DEFAULT_FONT_COLOR

    async def test_clear_parent_makes_root(self, store):
        parent = await store.create("parent")
        child = await store.create("child", parent_id=parent.id)

        updated = await store.modify(child.id, parent_id=None)

        assert updated.parent_id is None

    async def test_name_cannot_be_cleared(self, store):
        tag = await store.create("work")
        with pytest.raises(EmptyNameError):
            await store.modify(tag.id, name=None)

    async def test_rename_to_sibling_name_rejected(self, store):
        await store.create("alpha")
        beta = await store.create("beta")
        with pytest.raises(DuplicateTagError):
            await store.modify(beta.id, name="alpha")

    async def test_reparent_under_self_rejected(self, store):
        tag = await store.create("self")
        with pytest.raises(CycleDetectedError):
            await store.modify(tag.id, parent_id=tag.id)

    async def test_reparent_under_descendant_rejected(self, store):
        root = await store.create("root")
        mid = await store.create("mid", parent_id=root.id)
        leaf = await store.create("leaf", parent_id=mid.id)

        with pytest.raises(CycleDetectedError):
            await store.modify(root.id, parent_id=leaf.id)

    async def test_reparent_elsewhere_allowed(self, store):
        a = await store.create("a")
        b = await store.create("b")
        child = await store.create("child", parent_id=a.id)

        updated = await store.modify(child.id, parent_id=b.id)

        assert updated.parent_id == b.id

    async def test_modify_missing_tag(self, store):
        with pytest.raises(NotFoundError):
            await store.modify(12345, name="x")


# =============================================================================
# Search and List
# =============================================================================


class TestSearchAndList:
    """Tests for search, list and children."""

    async def test_search_is_case_insensitive_substring(self, store, db_session):
        await store.create("Holiday Photos")
        await store.create("holiday videos")
        await store.create("work")

        tags = await store.search("HOLIDAY")

        assert sorted(t.name for t in tags) == ["Holiday Photos", "holiday videos"]

    async def test_search_orders_by_usage_then_id(self, store, db_session):
        low = await store.create("tax 2023")
        high = await store.create("tax 2024")
        tie = await store.create("tax 2022")
        high.usage_count = 5
        await db_session.flush()

        tags = await store.search("tax")

        assert [t.id for t in tags] == [high.id, low.id, tie.id]

    async def test_search_escapes_wildcards(self, store):
        await store.create("100% done")
        await store.create("1000 done")

        tags = await store.search("100%")

        assert [t.name for t in tags] == ["100% done"]

    async def test_empty_keyword_returns_nothing(self, store):
        await store.create("anything")
        assert await store.search("   ") == []

    async def test_search_respects_limit(self, store):
        for i in range(5):
            await store.create(f"tag{i}")
        assert len(await store.search("tag", limit=2)) == 2

    async def test_list_most_used(self, store, db_session):
        a = await store.create("a")
        b = await store.create("b")
        c = await store.create("c")
        b.usage_count = 3
        c.usage_count = 3
        await db_session.flush()

        tags = await store.list(TagListMode.MOST_USED)

        assert [t.id for t in tags] == [b.id, c.id, a.id]

    async def test_list_recent_used(self, store, db_session):
        a = await store.create("a")
        b = await store.create("b")
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        a.updated_at = base + timedelta(days=2)
        b.updated_at = base
        await db_session.flush()

        tags = await store.list(TagListMode.RECENT_USED)

        assert [t.id for t in tags] == [a.id, b.id]

    async def test_list_excludes_deleted(self, store):
        keep = await store.create("keep")
        gone = await store.create("gone")
        await store.delete(gone.id)

        assert [t.id for t in await store.list()] == [keep.id]

    async def test_children_ordered_by_name(self, store):
        parent = await store.create("parent")
        zed = await store.create("zed", parent_id=parent.id)
        abe = await store.create("abe", parent_id=parent.id)
        await store.create("grandchild", parent_id=abe.id)

        children = await store.children(parent.id)

        assert [t.id for t in children] == [abe.id, zed.id]


# =============================================================================
# Delete
# =============================================================================


class TestDeleteTag:
    """Tests for cascading TagStore.delete."""

    async def test_delete_cascades_to_descendants(self, store, db_session):
        root = await store.create("root")
        child = await store.create("child", parent_id=root.id)
        grandchild = await store.create("grandchild", parent_id=child.id)
        other = await store.create("other")

        deleted = await store.delete(root.id)

        assert deleted == [root.id, child.id, grandchild.id]
        for tag_id in deleted:
            with pytest.raises(NotFoundError):
                await store.get(tag_id)
        assert (await store.get(other.id)).id == other.id

    async def test_delete_removes_associations_and_zeroes_counts(self, store, db_session):
        associations = AssociationStore(db_session)
        root = await store.create("root")
        child = await store.create("child", parent_id=root.id)
        record = await create_test_file(db_session, "/a.txt")
        await associations.attach(record.id, root.id)
        await associations.attach(record.id, child.id)

        await store.delete(root.id)

        rows = await db_session.execute(select(FileTag).where(FileTag.file_id == record.id))
        assert rows.scalars().all() == []
        result = await db_session.execute(
            select(Tag.usage_count).where(Tag.id.in_([root.id, child.id]))
        )
        assert result.scalars().all() == [0, 0]

    async def test_delete_leaves_unrelated_associations(self, store, db_session):
        associations = AssociationStore(db_session)
        root = await store.create("root")
        child = await store.create("child", parent_id=root.id)
        other = await store.create("other")
        record = await create_test_file(db_session, "/shared.txt")
        for tag in (root, child, other):
            await associations.attach(record.id, tag.id)

        await store.delete(root.id)

        rows = await db_session.execute(select(FileTag.tag_id).where(FileTag.file_id == record.id))
        assert rows.scalars().all() == [other.id]
        assert (await store.get(other.id)).usage_count == 1
        assert [t.id for t in await associations.list_for_file(record.id)] == [other.id]

    async def test_delete_missing_tag(self, store):
        with pytest.raises(NotFoundError):
            await store.delete(777)

    async def test_descendant_ids_breadth_first(self, store):
        root = await store.create("root")
        a = await store.create("a", parent_id=root.id)
        b = await store.create("b", parent_id=root.id)
        a1 = await store.create("a1", parent_id=a.id)

        assert await store.descendant_ids(root.id) == [a.id, b.id, a1.id]
