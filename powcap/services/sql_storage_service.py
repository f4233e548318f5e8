"""SQLAlchemy-backed implementations of the challenge and token stores."""

import json

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from powcap.models.challenge import ChallengeRecord
from powcap.models.token import TokenRecord
from powcap.schemas.cap import ChallengeData, PuzzleParams
from powcap.services.crypto_utils import now_ms


def encode_params(params: PuzzleParams) -> str:
    return json.dumps({"c": params.c, "s": params.s, "d": params.d})


def decode_record(data: str, expires: int) -> ChallengeData:
    return ChallengeData(challenge=PuzzleParams(**json.loads(data)), expires=expires)


class SqlChallengeStorage:
    """
    Challenge store over the ``challenges`` table.

    Each call opens its own short-lived session from ``session_factory`` so the
    store can be shared between concurrent requests.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    async def store(self, token: str, data: ChallengeData) -> None:
        with self._session_factory() as db:
            db.merge(
                ChallengeRecord(
                    token=token,
                    data=encode_params(data.challenge),
                    expires=data.expires,
                )
            )
            db.commit()

    async def read(self, token: str) -> ChallengeData | None:
        with self._session_factory() as db:
            row = db.execute(
                select(ChallengeRecord.data, ChallengeRecord.expires).where(
                    ChallengeRecord.token == token,
                    ChallengeRecord.expires > now_ms(),
                )
            ).first()
        return decode_record(row.data, row.expires) if row else None

    async def take(self, token: str) -> ChallengeData | None:
        """Delete the record and return what was deleted, in one statement."""
        with self._session_factory() as db:
            row = db.execute(
                delete(ChallengeRecord)
                .where(ChallengeRecord.token == token)
                .returning(ChallengeRecord.data, ChallengeRecord.expires),
                execution_options={"synchronize_session": False},
            ).first()
            db.commit()
        return decode_record(row.data, row.expires) if row else None

    async def delete(self, token: str) -> None:
        with self._session_factory() as db:
            db.execute(delete(ChallengeRecord).where(ChallengeRecord.token == token))
            db.commit()

    async def list_expired(self) -> list[str]:
        with self._session_factory() as db:
            return list(
                db.scalars(
                    select(ChallengeRecord.token).where(ChallengeRecord.expires <= now_ms())
                )
            )


class SqlTokenStorage:
    """Verification token store over the ``tokens`` table."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    async def store(self, key: str, expires: int) -> None:
        with self._session_factory() as db:
            db.merge(TokenRecord(key=key, expires=expires))
            db.commit()

    async def get(self, key: str) -> int | None:
        with self._session_factory() as db:
            return db.scalar(
                select(TokenRecord.expires).where(
                    TokenRecord.key == key,
                    TokenRecord.expires > now_ms(),
                )
            )

    async def delete(self, key: str) -> None:
        with self._session_factory() as db:
            db.execute(delete(TokenRecord).where(TokenRecord.key == key))
            db.commit()

    async def list_expired(self) -> list[str]:
        with self._session_factory() as db:
            return list(db.scalars(select(TokenRecord.key).where(TokenRecord.expires <= now_ms())))
