# ─────────────────────────────────────────────────────────────────────────────
# Logging — structlog events rendered by one stdlib handler
# ─────────────────────────────────────────────────────────────────────────────
# Library loggers (uvicorn, httpx) and structlog events share the same stdout
# handler, so one request's lines come out in one format with its request_id.
# ─────────────────────────────────────────────────────────────────────────────


import logging
import sys

import structlog

# httpx/httpcore log full upstream URLs and headers; those may carry keys.
_LIBRARY_LEVELS: dict[str, int] = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
}


def _event_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]


def configure_logging(log_level: str = "INFO", json_output: bool = True) -> None:
    """Route structlog through stdlib logging with a single stdout handler.

    json_output=True writes one JSON object per line for log shippers;
    False uses structlog's colored console renderer for local runs.
    Unknown level names fall back to INFO.
    """
    structlog.configure(
        processors=[
            *_event_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
    )

    # ConsoleRenderer prints tracebacks itself; JSON needs them as a string field.
    rendering: list[structlog.types.Processor] = (
        [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
        if json_output
        else [structlog.dev.ConsoleRenderer()]
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *rendering],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.getLevelName(log_level.upper()) if _known(log_level) else logging.INFO)

    for name, level in _LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(level)


def _known(level_name: str) -> bool:
    return isinstance(logging.getLevelName(level_name.upper()), int)
