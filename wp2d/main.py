"""Client wiring: logging, Sentry, shared HTTP client, configured pod session."""

import logging

import httpx
import sentry_sdk
import structlog

from wp2d.api import PodSessionClient
from wp2d.config import Settings

log = structlog.get_logger()


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog for JSON output."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _init_sentry(dsn: str) -> None:
    """Initialize Sentry SDK if DSN is configured."""
    if dsn:
        sentry_sdk.init(dsn=dsn, traces_sample_rate=0.1)
        log.info("sentry_initialized")


def create_http_client(timeout: float = 30.0, connect_timeout: float = 5.0) -> httpx.Client:
    """Create the httpx client backing one pod session (it holds the cookie jar)."""
    return httpx.Client(
        limits=httpx.Limits(max_connections=5, max_keepalive_connections=2),
        timeout=httpx.Timeout(timeout, connect=connect_timeout),
        headers={"User-Agent": "wp2d"},
    )


def create_pod_client(settings: Settings, http_client: httpx.Client | None = None) -> PodSessionClient:
    """Create an uninitialised session for the configured pod.

    The session owns (and closes) the HTTP client only when it is built here.
    """
    owns_client = http_client is None
    if http_client is None:
        http_client = create_http_client(settings.http_timeout, settings.connect_timeout)
    return PodSessionClient(
        settings.pod, settings.use_https, http_client=http_client, owns_client=owns_client
    )


def connect(settings: Settings, http_client: httpx.Client | None = None) -> PodSessionClient:
    """Initialise a session and log in when credentials are configured.

    Never raises; check ``client.last_error`` on the returned client.
    """
    client = create_pod_client(settings, http_client)
    if not client.initialize():
        log.error("pod_connect_failed", pod=settings.pod, error=client.last_error_message)
        return client

    if settings.has_credentials:
        if not client.login(settings.username, settings.password.get_secret_value()):
            log.error("pod_connect_login_failed", pod=settings.pod, error=client.last_error_message)
    else:
        log.info("pod_connect_no_credentials", pod=settings.pod)
    return client


def bootstrap(settings: Settings) -> None:
    """Process-wide setup: logging and error reporting."""
    configure_logging(settings.log_level)
    _init_sentry(settings.sentry_dsn)
