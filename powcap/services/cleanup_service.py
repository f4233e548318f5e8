import asyncio

import structlog

from powcap.schemas.cap import CleanupReport
from powcap.services.storage_service import StorageHooks

logger = structlog.get_logger()


async def _purge_expired(store: object, name: str) -> int | None:
    """Delete every expired key in ``store``. Returns None if it can't list them."""
    list_expired = getattr(store, "list_expired", None)
    if list_expired is None:
        logger.warning(
            "cleanup_skipped",
            store=name,
            reason=f"{name} storage has no list_expired, couldn't delete expired {name}",
        )
        return None

    expired = await list_expired()
    await asyncio.gather(*(store.delete(key) for key in expired))
    return len(expired)


async def cleanup(storage: StorageHooks) -> CleanupReport:
    """
    Purge expired challenges and verification tokens.

    Best effort: expired records are rejected at read time anyway, so a
    failing or unsupported half is logged and the other half still runs.
    """
    report = CleanupReport()

    for name, store in (("challenges", storage.challenges), ("tokens", storage.tokens)):
        if store is None:
            report.skipped.append(name)
            continue
        try:
            deleted = await _purge_expired(store, name)
        except Exception as e:
            logger.error("cleanup_failed", store=name, error=str(e))
            report.failed.append(name)
            continue
        if deleted is None:
            report.skipped.append(name)
        elif name == "challenges":
            report.challenges_deleted = deleted
        else:
            report.tokens_deleted = deleted

    logger.info(
        "cleanup_completed",
        challenges_deleted=report.challenges_deleted,
        tokens_deleted=report.tokens_deleted,
    )
    return report
