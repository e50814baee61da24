"""
vidgist.logging - Package logger and per-run log prefixes.
"""

from __future__ import annotations

import logging

logger = logging.getLogger("vidgist")

# Libraries that log every HTTP request at INFO
NOISY_LOGGERS = ("LiteLLM", "httpx", "httpcore")


class RunLogger(logging.LoggerAdapter):
    """Prefixes every message with the pipeline run id."""

    def process(self, msg, kwargs):
        return f"[{self.extra['run_id']}] {msg}", kwargs


def run_logger(run_id: str) -> RunLogger:
    return RunLogger(logger, {"run_id": run_id})


def configure_logging(verbose: bool = False) -> None:
    """Configure logging for the CLI.

    Args:
        verbose: DEBUG for vidgist when True, WARNING otherwise. Third-party
            HTTP chatter stays at WARNING either way.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    logger.setLevel(level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
