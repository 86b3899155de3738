"""Slow query logging for the storefront database engine."""

import logging
import time
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

_MAX_LOGGED_STATEMENT = 500


def setup_query_monitoring(engine: AsyncEngine, slow_query_threshold: float = 0.1) -> None:
    """Log a warning for every statement slower than ``slow_query_threshold`` seconds.

    The public storefront read path runs its loader only on cache misses, so a
    slow loader query shows up here rather than as visitor latency on hits.
    """
    if not hasattr(engine, "sync_engine"):
        logger.warning("Engine does not have sync_engine attribute, skipping query monitoring")
        return

    @event.listens_for(engine.sync_engine, "before_cursor_execute")
    def receive_before_cursor_execute(
        conn: Any,
        cursor: Any,
        statement: str,
        parameters: Any,
        context: Any,
        executemany: bool,
    ) -> None:
        conn.info.setdefault("query_start_time", []).append(time.perf_counter())

    @event.listens_for(engine.sync_engine, "after_cursor_execute")
    def receive_after_cursor_execute(
        conn: Any,
        cursor: Any,
        statement: str,
        parameters: Any,
        context: Any,
        executemany: bool,
    ) -> None:
        total = time.perf_counter() - conn.info["query_start_time"].pop()
        if total <= slow_query_threshold:
            return

        truncated_statement = statement[:_MAX_LOGGED_STATEMENT]
        if len(statement) > _MAX_LOGGED_STATEMENT:
            truncated_statement += "..."
        logger.warning(
            "Slow query detected (%.3fs): %s",
            total,
            truncated_statement,
            extra={"duration_seconds": total, "threshold_seconds": slow_query_threshold},
        )

    logger.info("Query performance monitoring enabled (slow query threshold: %ss)", slow_query_threshold)
