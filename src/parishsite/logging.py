import logging
from collections.abc import MutableMapping
from typing import Any

import structlog

# Event keys that may carry credentials and never reach the log output
REDACTED_KEYS = frozenset({"password", "code", "token", "device_token", "session_id", "cookie"})
REDACTED = "[redacted]"


def redact_secrets(_: object, __: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    for key in REDACTED_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def setup_logging(debug: bool) -> None:
    log_level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(level=log_level, format="%(message)s")

    # MongoDB driver chatter (heartbeats, pool events) is only useful when it fails
    for name in ("pymongo", "pymongo.topology", "pymongo.connection", "pymongo.command", "pymongo.serverSelection"):
        logging.getLogger(name).setLevel(logging.WARNING)

    processors: list[structlog.types.Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if debug:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        # One JSON object per line for the log collector
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
