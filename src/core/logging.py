import logging

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

NOISY_LOGGERS = ["uvicorn.access", "uvicorn.error", "livekit", "asyncio", "httpx", "openai"]


def configure_logging(debug: bool = False) -> None:
    """Root logging setup for the API process"""
    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO, format=LOG_FORMAT)
    # Silence noisy loggers
    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.ERROR)


def get_plain_logger(name: str, level=logging.INFO) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False
    if not logger.hasHandlers():
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger
