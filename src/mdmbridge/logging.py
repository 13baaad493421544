import logging
import sys

import structlog


def setup_logging(level: "str", account: "str" = "") -> "None":
    """
    configures structlog on top of the logging module. Output goes
    to stderr since stdin/stdout may carry records. When an account
    is given it is bound to every log line, so failures can be traced
    back to the MDM account they were sent under.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        format="%(message)s",
        level=numeric_level,
        stream=sys.stderr,
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    if account:
        structlog.contextvars.bind_contextvars(mdm_account=account)
