import uvicorn

from core.config import settings
from core.logger import setup_logging, logger


def main():
    # Setup structured logging
    setup_logging()
    logger.info("Starting API...", env=settings.ENV)
    uvicorn.run("api.main:app", host="0.0.0.0", port=8000, log_level=settings.LOG_LEVEL.lower(),
                reload=settings.DEBUG)


if __name__ == "__main__":
    try:
        main()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Application stopped.")
