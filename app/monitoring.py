"""Prometheus metrics instrumentation for application monitoring."""

from prometheus_fastapi_instrumentator import Instrumentator
from fastapi import FastAPI
from .config import settings
from .logger import logger


def setup_monitoring(app: FastAPI) -> None:
    """Configure and expose the Prometheus metrics endpoint when ENABLE_METRICS is set."""
    if not settings.ENABLE_METRICS:
        logger.info("Metrics disabled - /metrics not exposed")
        return

    instrumentator = Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=["/metrics"],
        inprogress_name="http_requests_inprogress",
        inprogress_labels=True,
    )

    instrumentator.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)
