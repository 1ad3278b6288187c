import logging
import sys

from app.utils.logging_redaction import install_redaction_filter

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("sqlalchemy.engine", "httpx", "httpcore", "apscheduler.executors.default")


def setup_logging(level: str = "INFO", redact: bool = True) -> None:
    """
    Configure centralized application logging.

    Wallet addresses and admin / bot tokens are redacted on every
    handler of the root logger unless `redact` is False.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if redact:
        install_redaction_filter()
