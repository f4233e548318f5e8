from powcap.config import settings
from powcap.database import SessionLocal
from powcap.schemas.cap import (
    ChallengeConfig,
    ChallengeResult,
    CleanupReport,
    RedeemResult,
    ValidateResult,
)
from powcap.services import challenge_service, cleanup_service, token_service
from powcap.services.sql_storage_service import SqlChallengeStorage, SqlTokenStorage
from powcap.services.storage_service import StorageHooks


class Cap:
    """Protocol engine bound to one set of storage hooks."""

    def __init__(
        self,
        storage: StorageHooks,
        token_expires_ms: int = token_service.DEFAULT_TOKEN_EXPIRES_MS,
    ) -> None:
        self.storage = storage
        self.token_expires_ms = token_expires_ms

    async def create_challenge(
        self, config: ChallengeConfig | dict | None = None
    ) -> ChallengeResult:
        return await challenge_service.create_challenge(self.storage, config)

    async def redeem_challenge(self, token: object, solutions: object) -> RedeemResult:
        return await challenge_service.redeem_challenge(
            self.storage, token, solutions, token_expires_ms=self.token_expires_ms
        )

    async def validate_token(self, token: object, keep_token: bool = False) -> ValidateResult:
        return await token_service.validate_token(self.storage, token, keep_token=keep_token)

    async def cleanup(self) -> CleanupReport:
        return await cleanup_service.cleanup(self.storage)


_cap: Cap | None = None


def get_cap() -> Cap:
    """Dependency for FastAPI endpoints: the engine wired to the SQL stores."""
    global _cap
    if _cap is None:
        _cap = Cap(
            StorageHooks(
                challenges=SqlChallengeStorage(SessionLocal),
                tokens=SqlTokenStorage(SessionLocal),
            ),
            token_expires_ms=settings.token_expires_ms,
        )
    return _cap
