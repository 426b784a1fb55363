"""
Integration tests for access-scoped collections against a real MongoDB.
"""

import pytest
from bson import ObjectId

from shopkeeper.access import FieldEquals, Subject
from shopkeeper.exceptions import (
    AccessDeniedError,
    DuplicateValueError,
    InvalidReferenceError,
)


def _subject(user_id, is_admin=False):
    return Subject(id=str(user_id), is_admin=is_admin)


async def _create_user(engine, email):
    result = await engine.scoped_db(None)["User"].insert_one(
        {"email": email, "password": "long-enough"}
    )
    return result.inserted_id


@pytest.mark.integration
class TestOwnershipOnMongoDB:
    @pytest.mark.asyncio
    async def test_owner_filter_applies_server_side(self, real_engine):
        ada = await _create_user(real_engine, "ada@example.com")
        bob = await _create_user(real_engine, "bob@example.com")
        admin_db = real_engine.scoped_db(_subject(ObjectId(), is_admin=True))
        await admin_db["Shop"].insert_one({"name": "Ada's", "user": str(ada)})
        await admin_db["Shop"].insert_one({"name": "Bob's", "user": str(bob)})

        ada_db = real_engine.scoped_db(_subject(ada))
        shops = await ada_db["Shop"].find()
        assert [shop["name"] for shop in shops] == ["Ada's"]
        assert await ada_db["Shop"].count_documents() == 1
        assert await admin_db["Shop"].count_documents() == 2

    @pytest.mark.asyncio
    async def test_non_owner_cannot_update_or_delete(self, real_engine):
        ada = await _create_user(real_engine, "ada@example.com")
        bob = await _create_user(real_engine, "bob@example.com")
        bob_db = real_engine.scoped_db(_subject(bob))
        result = await bob_db["Channel"].insert_one({"name": "Web", "user": str(bob)})
        by_id = FieldEquals("id", str(result.inserted_id)).to_query()

        ada_db = real_engine.scoped_db(_subject(ada))
        update = await ada_db["Channel"].update_one(by_id, {"name": "Hijacked"})
        assert update.matched_count == 0
        delete = await ada_db["Channel"].delete_one(by_id)
        assert delete.deleted_count == 0

        record = await bob_db["Channel"].find_one(by_id)
        assert record["name"] == "Web"

    @pytest.mark.asyncio
    async def test_owner_reference_must_exist(self, real_engine):
        admin_db = real_engine.scoped_db(_subject(ObjectId(), is_admin=True))
        with pytest.raises(InvalidReferenceError):
            await admin_db["Shop"].insert_one({"name": "Ghost's", "user": str(ObjectId())})
        assert await admin_db["Shop"].count_documents() == 0

    @pytest.mark.asyncio
    async def test_anonymous_read_denied(self, real_engine):
        with pytest.raises(AccessDeniedError):
            await real_engine.scoped_db(None)["Match"].find()


@pytest.mark.integration
class TestRelationshipsOnMongoDB:
    @pytest.mark.asyncio
    async def test_back_references_follow_item(self, real_engine):
        admin_db = real_engine.scoped_db(_subject(ObjectId(), is_admin=True))
        first = str((await admin_db["Shop"].insert_one({"name": "First"})).inserted_id)
        second = str((await admin_db["Shop"].insert_one({"name": "Second"})).inserted_id)

        item = await admin_db["ShopItem"].insert_one({"pId": "P-1", "shop": first})
        item_id = str(item.inserted_id)
        by_id = FieldEquals("id", item_id).to_query()

        await admin_db["ShopItem"].update_one(by_id, {"shop": second})
        shops = {str(s["_id"]): s for s in await admin_db["Shop"].find()}
        assert shops[first]["shopItems"] == []
        assert shops[second]["shopItems"] == [item_id]

        await admin_db["Shop"].delete_one(FieldEquals("id", second).to_query())
        record = await admin_db["ShopItem"].find_one(by_id)
        assert "shop" not in record


@pytest.mark.integration
class TestUsersOnMongoDB:
    @pytest.mark.asyncio
    async def test_duplicate_email_rejected(self, real_engine):
        anonymous = real_engine.scoped_db(None)
        await anonymous["User"].insert_one({"email": "ada@example.com", "password": "pw-1"})
        with pytest.raises(DuplicateValueError):
            await anonymous["User"].insert_one({"email": "ada@example.com", "password": "pw-2"})

    @pytest.mark.asyncio
    async def test_signup_then_authenticate(self, real_engine):
        result = await real_engine.scoped_db(None)["User"].insert_one(
            {"email": "eve@example.com", "password": "letmein"}
        )
        user = await real_engine.authenticate("eve@example.com", "letmein")
        assert user["_id"] == result.inserted_id
        assert await real_engine.authenticate("eve@example.com", "nope") is None

        subject = await real_engine.resolve_subject(str(result.inserted_id))
        own = await real_engine.scoped_db(subject)["User"].find()
        assert [u["email"] for u in own] == ["eve@example.com"]
