"""Public entry point: connect to a cluster and list resources."""

from pathlib import Path

import structlog

from . import fetcher, filters, resources
from .connection import DEFAULT_TIMEOUT, Connection, build_connection
from .kubeconfig import KubeConfig, load_kubeconfig

logger = structlog.get_logger(__name__)


class KubernetesSession:
    """A loaded kubeconfig together with a live connection.

    Can be used as a context manager for automatic cleanup.
    """

    def __init__(self, kubeconfig: KubeConfig, connection: Connection):
        self.kubeconfig = kubeconfig
        self.connection = connection

    @property
    def base_uri(self) -> str:
        return self.connection.base_uri

    def __enter__(self):
        """Enter context manager."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context manager and close the connection."""
        self.close()

    def close(self) -> None:
        self.connection.close()

    def list_pods(
        self,
        namespace: str,
        options: resources.ListOptions | None = None,
    ) -> list[resources.Pod]:
        """List every pod in ``namespace``.

        Raises:
            InvalidDataError: If ``namespace`` is empty.
            RequestError: If the request fails or returns a non-2xx status.
            ParseError: If the response is not a pod list.
        """
        request = resources.list_namespaced_pod(namespace, options)
        return fetcher.fetch_list(self.connection, request)

    def list_events(
        self,
        since: str | None = None,
        options: resources.ListOptions | None = None,
    ) -> list[resources.Event]:
        """List events across all namespaces, optionally since a timestamp.

        Args:
            since: RFC 3339 cutoff; only events at or after it are kept.
            options: Extra list query parameters.

        Raises:
            DatetimeFormatError: If ``since`` is malformed.
            RequestError: If the request fails or returns a non-2xx status.
            ParseError: If the response is not an event list.
        """
        # Validate the cutoff before going to the network.
        if since is not None:
            filters.parse_rfc3339(since)
        request = resources.list_event_for_all_namespaces(options)
        events = fetcher.fetch_list(self.connection, request)
        return filters.filter_since(events, since)


def connect(
    kubeconfig_path: str | Path | None = None,
    scheme: str | None = None,
    host: str | None = None,
    port: int | None = None,
    use_service_discovery: bool = False,
    insecure_skip_verify: bool | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> KubernetesSession:
    """Load a kubeconfig and open a mutual-TLS session to the cluster.

    Args:
        kubeconfig_path: Kubeconfig location, defaults to ``~/.kube/config``.
        scheme: Explicit URI scheme (default ``https``).
        host: Explicit API host (default ``localhost``).
        port: Explicit API port (default 6443).
        use_service_discovery: Take host and port from the in-cluster
            ``KUBERNETES_SERVICE_*`` variables.
        insecure_skip_verify: Skip verification of the server certificate.
            None defers to the cluster's ``insecure-skip-tls-verify``.
        timeout: HTTP timeout in seconds.

    Returns:
        Session holding the kubeconfig and connection.

    Raises:
        IoError: If the kubeconfig or credential files cannot be read.
        ConfigLoadError: If the kubeconfig is malformed or has no cluster.
        BuildError: If identity material is missing or unusable.
        DecodeError: If inline credential data is not valid base64.
    """
    kubeconfig = load_kubeconfig(kubeconfig_path)
    connection = build_connection(
        kubeconfig,
        scheme=scheme,
        host=host,
        port=port,
        use_service_discovery=use_service_discovery,
        insecure_skip_verify=insecure_skip_verify,
        timeout=timeout,
    )
    return KubernetesSession(kubeconfig=kubeconfig, connection=connection)
