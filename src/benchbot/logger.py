import logging

import notifiers.logging

from benchbot import config

logger = logging.getLogger("benchbot")


def get_log_handlers(logger):
    if config.TELEGRAM_TOKEN is None:
        return []
    handler = notifiers.logging.NotificationHandler(
        "telegram",
        defaults={
            "token": config.TELEGRAM_TOKEN,
            "chat_id": config.TELEGRAM_CHAT_ID,
        },
    )
    handler.setLevel(logging.WARNING)
    logger.addHandler(handler)
    return [handler]


def log_fatal(msg: str, error: BaseException, **context) -> None:
    """Fatal channel: CRITICAL record with the traceback and any context attached."""
    if context:
        logger.critical(
            "%s %s", msg, context, exc_info=(type(error), error, error.__traceback__)
        )
    else:
        logger.critical(msg, exc_info=(type(error), error, error.__traceback__))
