import asyncio
import logging

from vending.config import get_settings
from vending.container import Container
from vending.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


async def _purge_expired_tokens(container: Container) -> int:
    try:
        return await container.token_service.purge_expired_tokens()
    finally:
        await container.shutdown()


@celery_app.task(bind=True, name="purge_expired_tokens")
def purge_expired_tokens(self) -> dict:
    """
    Delete OAuth2 tokens whose refresh token has expired.

    Runs on the beat schedule; each run builds its own container so the
    worker holds no connections between runs.

    Returns:
        Dictionary with the number of tokens removed
    """
    logger.info("Purging expired tokens")
    try:
        removed = asyncio.run(_purge_expired_tokens(Container(get_settings())))
    except Exception as e:
        logger.error(f"Error purging expired tokens: {e}")
        raise self.retry(exc=e, countdown=60, max_retries=3)

    return {"status": "success", "removed": removed}
