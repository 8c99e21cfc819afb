"""Command-line entry point and composition root.

Usage::

    diffsage request.json

The request path may also come from ``DIFFSAGE_REQUEST_PATH``. Each review
event is written to stdout as one JSON line; the exit code is 0 when the
review completed and 1 otherwise.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys

from pathlib import Path
from typing import TextIO

from diffsage.application.admission import ReviewGateway
from diffsage.application.run_review import (
    EventPublisher,
    ReviewMetricsPort,
    ReviewOracle,
)
from diffsage.domain.review.events import EventKind
from diffsage.infrastructure.admission.file_validator import FileValidator
from diffsage.infrastructure.admission.rate_limiter import FixedWindowRateLimiter
from diffsage.infrastructure.cache.lru_cache import LRUCache
from diffsage.infrastructure.events.bus import InMemoryEventBus
from diffsage.infrastructure.monitoring.review_monitor import ReviewMonitor
from diffsage.infrastructure.oracle.agent_oracle import AgentOracle
from diffsage.infrastructure.oracle.caching import CachingOracle
from diffsage.infrastructure.oracle.retrying import RetryingOracle, RetryPolicy
from diffsage.interfaces.config import ServiceConfig
from diffsage.interfaces.schemas import ReviewRequest, load_request
from diffsage.shared.exceptions import DiffsageError
from diffsage.shared.types import ClientId, TerminalStatus

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


# =============================================================================
# COMPOSITION
# =============================================================================


def build_oracle(config: ServiceConfig) -> ReviewOracle:
    """Agent oracle wrapped in retries, then (optionally) the cache."""
    settings = config.settings
    oracle: ReviewOracle = RetryingOracle(
        inner=AgentOracle(config=config.model_config),
        policy=RetryPolicy(max_retries=settings.retry_limit),
    )
    if settings.cache_enabled:
        oracle = CachingOracle(
            inner=oracle,
            cache=LRUCache(
                max_entries=settings.cache_max_entries,
                ttl_seconds=settings.cache_ttl_seconds,
            ),
        )
    logger.info("Oracle: %s (provider %s)", settings.model, config.model_config.provider)
    return oracle


def build_gateway(
    config: ServiceConfig,
    oracle: ReviewOracle,
    publisher: EventPublisher,
    metrics: ReviewMetricsPort | None = None,
) -> ReviewGateway:
    settings = config.settings
    return ReviewGateway(
        oracle=oracle,
        publisher=publisher,
        rate_limiter=FixedWindowRateLimiter(
            max_requests=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        ),
        file_validator=FileValidator(
            max_files=settings.max_files,
            max_file_size=settings.max_file_size,
            max_total_size=settings.max_total_size,
        ),
        metrics=metrics,
        strict_diff_parsing=settings.strict_diff_parsing,
    )


async def run_review(
    config: ServiceConfig,
    request: ReviewRequest,
    *,
    oracle: ReviewOracle | None = None,
    out: TextIO | None = None,
) -> TerminalStatus:
    """Run one review to its terminal event, writing every event to *out*."""
    out = out if out is not None else sys.stdout
    bus = InMemoryEventBus()
    monitor = ReviewMonitor()
    gateway = build_gateway(
        config, oracle if oracle is not None else build_oracle(config), bus, monitor
    )

    subscription = bus.subscribe(ClientId(request.client_id))
    status = TerminalStatus.FAILED
    try:
        ack = gateway.start_review(request.to_command())
        logger.info("%s (review %s)", ack.message, ack.review_id)
        async for event in subscription:
            out.write(json.dumps(event.to_dict()) + "\n")
            out.flush()
            if event.kind is EventKind.SESSION_TERMINAL:
                status = TerminalStatus(event.payload["status"])
                break
    finally:
        subscription.close()
        await gateway.shutdown()

    logger.info("Review metrics: %s", monitor.snapshot())
    return status


# =============================================================================
# ENTRY POINT
# =============================================================================


def main(argv: list[str] | None = None) -> None:
    args = sys.argv[1:] if argv is None else argv
    logging.basicConfig(level=logging.INFO, format=_LOG_FORMAT)

    try:
        config = ServiceConfig.from_toml()
        logging.getLogger().setLevel(config.settings.log_level)

        request_path = args[0] if args else config.request_path
        if not request_path:
            logger.error("Usage: diffsage <request.json> (or set DIFFSAGE_REQUEST_PATH)")
            sys.exit(1)

        request = load_request(Path(request_path))
        status = asyncio.run(run_review(config, request))
    except DiffsageError as e:
        logger.error("%s", e)
        sys.exit(1)
    except Exception:
        logger.exception("Unexpected error")
        sys.exit(1)

    logger.info("Review finished: %s", status)
    sys.exit(0 if status is TerminalStatus.COMPLETED else 1)


if __name__ == "__main__":
    main()
