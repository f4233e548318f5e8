"""
Storage contract for challenges and verification tokens, plus an in-process
backend.

The protocol engine never talks to a database directly. It is handed a
``StorageHooks`` capability set and only calls the methods below. Any backend
that satisfies the two protocols can be plugged in.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Protocol

from powcap.errors import CapError, StorageUnavailable
from powcap.schemas.cap import ChallengeData
from powcap.services.crypto_utils import now_ms


class ChallengeStorage(Protocol):
    """
    Challenge store contract.

    A backend may also offer ``async take(token) -> ChallengeData | None`` which
    reads and deletes in one atomic step. When present it is preferred over
    ``read`` + ``delete`` so two concurrent redemptions cannot both see the
    record.
    """

    async def store(self, token: str, data: ChallengeData) -> None: ...

    async def read(self, token: str) -> ChallengeData | None: ...

    async def delete(self, token: str) -> None: ...

    async def list_expired(self) -> list[str]: ...


class TokenStorage(Protocol):
    async def store(self, key: str, expires: int) -> None: ...

    async def get(self, key: str) -> int | None: ...

    async def delete(self, key: str) -> None: ...

    async def list_expired(self) -> list[str]: ...


@dataclass(frozen=True, slots=True)
class StorageHooks:
    challenges: ChallengeStorage | None = None
    tokens: TokenStorage | None = None


class MemoryChallengeStorage:
    """Dict-backed challenge store. Suitable for a single process."""

    def __init__(self) -> None:
        self._records: dict[str, ChallengeData] = {}

    async def store(self, token: str, data: ChallengeData) -> None:
        self._records[token] = data

    async def read(self, token: str) -> ChallengeData | None:
        return self._records.get(token)

    async def take(self, token: str) -> ChallengeData | None:
        return self._records.pop(token, None)

    async def delete(self, token: str) -> None:
        self._records.pop(token, None)

    async def list_expired(self) -> list[str]:
        now = now_ms()
        return [token for token, data in self._records.items() if data.expires <= now]

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, token: object) -> bool:
        return token in self._records


class MemoryTokenStorage:
    """Dict-backed verification token store."""

    def __init__(self) -> None:
        self._records: dict[str, int] = {}

    async def store(self, key: str, expires: int) -> None:
        self._records[key] = expires

    async def get(self, key: str) -> int | None:
        return self._records.get(key)

    async def delete(self, key: str) -> None:
        self._records.pop(key, None)

    async def list_expired(self) -> list[str]:
        now = now_ms()
        return [key for key, expires in self._records.items() if expires <= now]

    def keys(self) -> list[str]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: object) -> bool:
        return key in self._records


def memory_storage() -> StorageHooks:
    return StorageHooks(challenges=MemoryChallengeStorage(), tokens=MemoryTokenStorage())


@contextmanager
def storage_errors(action: str) -> Iterator[None]:
    """Re-raise any backend failure as ``StorageUnavailable``."""
    try:
        yield
    except CapError:
        raise
    except Exception as e:
        raise StorageUnavailable(f"Storage unavailable: could not {action} ({e})") from e
