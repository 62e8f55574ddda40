import logging

from messaging.core.config import get_settings


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging() -> None:
    level = getattr(logging, get_settings().log_level, logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # driver heartbeats are noisy at debug level
    logging.getLogger("pymongo").setLevel(max(level, logging.WARNING))
