"""Contract tests run against both storage backends."""

import json

import pytest
from sqlalchemy import select

from powcap.models.challenge import ChallengeRecord
from powcap.schemas.cap import PuzzleParams
from powcap.services.crypto_utils import now_ms
from tests.test_utils import challenge_data


@pytest.fixture(params=["memory", "sql"])
def hooks(request, storage, sql_storage):
    return storage if request.param == "memory" else sql_storage


class TestChallengeStorage:
    @pytest.mark.asyncio
    async def test_store_and_read(self, hooks):
        data = challenge_data(PuzzleParams(c=3, s=8, d=2))
        await hooks.challenges.store("tok", data)

        assert await hooks.challenges.read("tok") == data

    @pytest.mark.asyncio
    async def test_read_missing(self, hooks):
        assert await hooks.challenges.read("missing") is None

    @pytest.mark.asyncio
    async def test_delete(self, hooks):
        await hooks.challenges.store("tok", challenge_data())
        await hooks.challenges.delete("tok")
        await hooks.challenges.delete("tok")

        assert await hooks.challenges.read("tok") is None

    @pytest.mark.asyncio
    async def test_take_returns_then_removes(self, hooks):
        data = challenge_data()
        await hooks.challenges.store("tok", data)

        assert await hooks.challenges.take("tok") == data
        assert await hooks.challenges.take("tok") is None
        assert await hooks.challenges.read("tok") is None

    @pytest.mark.asyncio
    async def test_store_overwrites(self, hooks):
        await hooks.challenges.store("tok", challenge_data(PuzzleParams(c=1, s=1, d=1)))
        await hooks.challenges.store("tok", challenge_data(PuzzleParams(c=2, s=2, d=2)))

        assert (await hooks.challenges.read("tok")).challenge == PuzzleParams(c=2, s=2, d=2)

    @pytest.mark.asyncio
    async def test_list_expired(self, hooks):
        await hooks.challenges.store("old", challenge_data(expires_in_ms=-5_000))
        await hooks.challenges.store("new", challenge_data(expires_in_ms=5_000))

        assert await hooks.challenges.list_expired() == ["old"]


class TestTokenStorage:
    @pytest.mark.asyncio
    async def test_store_get_delete(self, hooks):
        expires = now_ms() + 60_000
        await hooks.tokens.store("id:hash", expires)

        assert await hooks.tokens.get("id:hash") == expires
        await hooks.tokens.delete("id:hash")
        assert await hooks.tokens.get("id:hash") is None

    @pytest.mark.asyncio
    async def test_list_expired(self, hooks):
        await hooks.tokens.store("old:hash", now_ms() - 5_000)
        await hooks.tokens.store("new:hash", now_ms() + 5_000)

        assert await hooks.tokens.list_expired() == ["old:hash"]


class TestSqlEncoding:
    @pytest.mark.asyncio
    async def test_params_persisted_as_compact_json(self, sql_storage, session_factory):
        data = challenge_data(PuzzleParams(c=50, s=32, d=4))
        await sql_storage.challenges.store("tok", data)

        with session_factory() as db:
            record = db.scalar(select(ChallengeRecord).where(ChallengeRecord.token == "tok"))

        assert json.loads(record.data) == {"c": 50, "s": 32, "d": 4}
        assert record.expires == data.expires

    @pytest.mark.asyncio
    async def test_read_hides_expired_rows(self, sql_storage):
        await sql_storage.challenges.store("old", challenge_data(expires_in_ms=-5_000))
        await sql_storage.tokens.store("old:hash", now_ms() - 5_000)

        assert await sql_storage.challenges.read("old") is None
        assert await sql_storage.tokens.get("old:hash") is None
