import logging

import notifiers.logging

from review_sentinel import config
from review_sentinel.exceptions import LookupFailure


class RunFailureFilter(logging.Filter):
    """
    Lets through records about a run that posted no comment: errors, and
    anything carrying a failed team lookup.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno >= logging.ERROR:
            return True
        if record.exc_info and isinstance(record.exc_info[1], LookupFailure):
            return True
        return False


def get_log_handlers(logger):
    """Notify on Telegram about failed runs, if a bot token is configured."""
    if config.TELEGRAM_TOKEN is None:
        return []
    handler = notifiers.logging.NotificationHandler(
        "telegram",
        defaults={
            "token": config.TELEGRAM_TOKEN,
            "chat_id": config.require("TELEGRAM_CHAT_ID"),
        },
    )
    handler.setLevel(logging.WARNING)
    handler.addFilter(RunFailureFilter())
    logger.addHandler(handler)
    return [handler]
