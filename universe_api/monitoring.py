"""Prometheus metrics for the HTTP layer."""

from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

# Probes and scrapes would otherwise dominate the request metrics
EXCLUDED_HANDLERS = ["/metrics", "/health", "/favicon.ico"]


def setup_monitoring(app: FastAPI) -> Instrumentator:
    """Instrument request latency/counts and expose them at /metrics.

    Collection is switched on by the ENABLE_METRICS environment variable.
    """
    instrumentator = Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
        should_respect_env_var=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=EXCLUDED_HANDLERS,
        env_var_name="ENABLE_METRICS",
        inprogress_name="universe_http_requests_inprogress",
        inprogress_labels=True,
    )
    instrumentator.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)
    return instrumentator
