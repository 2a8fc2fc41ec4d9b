from core.config import settings
from core.logger import logger
from services.session_registry import SessionRegistry


async def monitor_sessions(registry: SessionRegistry):
    """
    Periodic scan of in-memory quiz sessions.
    Sessions abandoned by their users are torn down so their timers stop.
    """
    logger.debug("Starting quiz session monitor scan...", active=len(registry))
    swept = registry.sweep(settings.SESSION_IDLE_TTL_SECONDS)
    logger.debug("Quiz session monitor scan completed.", swept=swept, active=len(registry))
    return swept
