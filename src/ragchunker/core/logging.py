import logging
import os
import sys
from typing import Any, Literal

import structlog

LogFormat = Literal["json", "plain", "auto"]


def _should_use_json_format() -> bool:
    """JSON lines under CI or when stderr is redirected."""
    ci_vars = ["CI", "CONTINUOUS_INTEGRATION", "GITHUB_ACTIONS", "JENKINS_URL"]
    if any(os.environ.get(var) for var in ci_vars):
        return True
    return not sys.stderr.isatty()


def setup_logging(format_type: LogFormat = "auto", level: str = "info") -> None:
    """
    Configure structlog for a chunking run.

    Log lines go to stderr; stdout is reserved for command output such as
    verify reports.

    Args:
        format_type: "json", "plain", or "auto" (JSON under CI or non-TTY)
        level: Minimum level name, e.g. "debug" to see every dropped segment
    """
    use_json = format_type == "json" or (format_type == "auto" and _should_use_json_format())
    renderer: Any = (
        structlog.processors.JSONRenderer()
        if use_json
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    min_level = logging.getLevelName(level.upper())
    if not isinstance(min_level, int):
        min_level = logging.INFO

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


log = structlog.get_logger()
