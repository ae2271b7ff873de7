"""
Structured logging for affine transformations.
Ingest and query-vector call sites report through the same logger.
"""

import logging
import os
from typing import Any, Dict, List


class StructuredLogger:
    """Structured logger for vector transform operations."""

    def __init__(self, name: str = "affine_search"):
        self.logger = logging.getLogger(name)
        level = getattr(logging, os.getenv("AFFINE_LOG_LEVEL", "INFO").upper(), None)
        self.logger.setLevel(level if isinstance(level, int) else logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        if status == "failed":
            self.logger.warning(message)
        else:
            self.logger.info(message)

    def log_transform(self, call_site: str, status: str = "success", details: Dict[str, Any] = None):
        """Log an affine transform at the ingest or query_vector call site."""
        self.log_operation(f"transform.{call_site}", status, details)

    def log_ingest_skip(self, processor_tag: str, field: str, reason: str):
        """Log a document passed through without a transform."""
        details = {"tag": processor_tag, "field": field, "reason": reason}
        self.log_operation("transform.ingest", "skipped", details)

    def log_config_issues(self, issues: List[str]):
        """Log configuration problems found at startup."""
        for issue in issues:
            self.logger.warning(f"Configuration issue: {issue}")

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)

    def is_debug_enabled(self) -> bool:
        return self.logger.isEnabledFor(logging.DEBUG)


# Global logger instance
logger = StructuredLogger()


def summarize_vector(values: Any, limit: int = 8) -> str:
    """Render a vector for debug logs, truncated after `limit` elements."""
    items = list(values)
    head = ", ".join(f"{float(v):g}" for v in items[:limit])
    if len(items) > limit:
        return f"[{head}, ... ({len(items)} total)]"
    return f"[{head}]"
