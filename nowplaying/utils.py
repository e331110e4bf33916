import logging
from typing import Optional

ACTIVITY_LOGGER = "nowplaying.activity"

activity_logger = logging.getLogger(ACTIVITY_LOGGER)


def configure_logging(level: str = "INFO", activity_log: Optional[str] = None):
    """Console logging for everything, plus a readable activity file log.

    The activity file only receives records written through log_action(),
    which carry the `action` and `details` fields its formatter expects.
    """
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    activity_logger.setLevel(logging.INFO)
    if activity_log and not activity_logger.handlers:
        fh = logging.FileHandler(activity_log)
        formatter = logging.Formatter(
            "%(asctime)s | action=%(action)s | details=%(details)s"
        )
        fh.setFormatter(formatter)
        activity_logger.addHandler(fh)


def log_action(action: str, details: str = ""):
    activity_logger.info(
        "%s: %s", action, details, extra={"action": action, "details": details}
    )
