import structlog

from powcap.errors import CapError, TokenExpiredOrMissing, TokenMalformed
from powcap.schemas.cap import IssuedToken, ValidateResult
from powcap.services.crypto_utils import now_ms, random_hex, sha256_hex
from powcap.services.storage_service import StorageHooks, storage_errors

logger = structlog.get_logger()

TOKEN_ID_BYTES = 8
TOKEN_SECRET_BYTES = 15
DEFAULT_TOKEN_EXPIRES_MS = 20 * 60 * 1000


def token_key(token_id: str, secret: str) -> str:
    """Storage key for a token. Contains the secret's hash, never the secret."""
    return f"{token_id}:{sha256_hex(secret)}"


def parse_token(token: object) -> tuple[str, str]:
    """
    Split ``"<id>:<secret>"`` into its parts.

    Raises TokenMalformed for anything that could not have been issued by
    ``issue_token``, before any storage is touched.
    """
    if not isinstance(token, str) or ":" not in token:
        raise TokenMalformed()
    token_id, _, secret = token.partition(":")
    if not token_id or not secret or ":" in secret:
        raise TokenMalformed()
    return token_id, secret


async def issue_token(
    storage: StorageHooks, expires_ms: int = DEFAULT_TOKEN_EXPIRES_MS
) -> IssuedToken:
    """
    Mint a verification token after a successful redemption.

    Returns the raw ``"<id>:<secret>"`` token. It is only available here; the
    store keeps ``"<id>:<sha256(secret)>"``.
    """
    secret = random_hex(TOKEN_SECRET_BYTES)
    token_id = random_hex(TOKEN_ID_BYTES)
    expires = now_ms() + expires_ms

    if storage.tokens is not None:
        with storage_errors("store verification token"):
            await storage.tokens.store(token_key(token_id, secret), expires)

    logger.info("token_issued", token_id=token_id, expires=expires)
    return IssuedToken(token=f"{token_id}:{secret}", expires=expires)


async def validate_token(
    storage: StorageHooks, token: object, keep_token: bool = False
) -> ValidateResult:
    """
    Check a verification token and, unless ``keep_token``, consume it.

    Never raises for protocol or storage failures; inspect ``success``.
    """
    try:
        key = token_key(*parse_token(token))

        store = storage.tokens
        expires = None
        if store is not None:
            with storage_errors("read verification token"):
                expires = await store.get(key)

        if not expires or expires <= now_ms():
            raise TokenExpiredOrMissing()

        if not keep_token:
            with storage_errors("delete verification token"):
                await store.delete(key)
    except CapError as e:
        logger.info("token_rejected", reason=e.code)
        return ValidateResult(success=False, message=e.message, error=e.code)

    logger.info("token_validated", kept=keep_token)
    return ValidateResult(success=True)
