"""kubesync.

Minimal synchronous Kubernetes API client: loads a kubeconfig, opens a
mutual-TLS connection and lists pods and events by decoding streamed
responses into typed models.

Use :func:`connect` with explicit arguments, or :func:`create_session` to
read them from a JSON settings file named by ``KUBESYNC_CONFIG_PATH``.
"""

from .errors import (
    BuildError,
    ConfigLoadError,
    DatetimeFormatError,
    DecodeError,
    InvalidDataError,
    IoError,
    KubernetesError,
    ParseError,
    RequestError,
)
from .session import KubernetesSession, connect
from .settings import ClientSettings, create_session

__version__ = "0.1.0"

__all__ = [
    "BuildError",
    "ClientSettings",
    "ConfigLoadError",
    "DatetimeFormatError",
    "DecodeError",
    "InvalidDataError",
    "IoError",
    "KubernetesError",
    "KubernetesSession",
    "ParseError",
    "RequestError",
    "connect",
    "create_session",
]
