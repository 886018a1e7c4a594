"""Settings file handling and logging setup."""

import json
import logging
import os
import pathlib

import pydantic
import structlog

from .connection import DEFAULT_TIMEOUT
from .session import KubernetesSession, connect

CONFIG_ENV_VAR = "KUBESYNC_CONFIG_PATH"
logger = structlog.get_logger(__name__)


class ClientSettings(pydantic.BaseModel):
    """Settings for opening a Kubernetes session."""

    kubeconfig_path: str | None = pydantic.Field(
        None,
        description="Path to the kubeconfig, defaults to ~/.kube/config",
    )
    scheme: str | None = pydantic.Field(None, description="API server URI scheme")
    host: str | None = pydantic.Field(None, description="API server host")
    port: int | None = pydantic.Field(
        None,
        description="API server port",
        gt=0,
        lt=65536,
    )
    use_service_discovery: bool = pydantic.Field(
        False,
        description="Resolve host and port from KUBERNETES_SERVICE_* variables",
    )
    insecure_skip_verify: bool | None = pydantic.Field(
        None,
        description="Skip API server certificate verification",
    )
    timeout: float = pydantic.Field(
        DEFAULT_TIMEOUT,
        description="Request timeout in seconds",
        gt=0,
    )
    log_level: str = pydantic.Field("INFO", description="Logging level")


def configure_logging(log_level_name: str) -> None:
    """Configure structlog for logfmt output."""
    log_level = getattr(logging, log_level_name.upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.EventRenamer("msg"),
            structlog.processors.format_exc_info,
            structlog.processors.LogfmtRenderer(
                key_order=("timestamp", "level", "msg"),
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def load_settings(config_path: str | pathlib.Path) -> ClientSettings:
    """Load settings from a JSON file."""
    path = pathlib.Path(config_path)
    if not path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise FileNotFoundError(msg)

    with path.open("r") as f:
        data = json.load(f)

    return ClientSettings(**data)


def create_session(config_path: str | None = None) -> KubernetesSession:
    """Open a session using a settings file, the environment, or defaults."""
    resolved_path = config_path or os.environ.get(CONFIG_ENV_VAR)
    settings = load_settings(resolved_path) if resolved_path else ClientSettings()
    configure_logging(settings.log_level)
    logger.info("Opening Kubernetes session", settings_path=resolved_path)
    return connect(
        kubeconfig_path=settings.kubeconfig_path,
        scheme=settings.scheme,
        host=settings.host,
        port=settings.port,
        use_service_discovery=settings.use_service_discovery,
        insecure_skip_verify=settings.insecure_skip_verify,
        timeout=settings.timeout,
    )
