"""Construction of mutual-TLS connections to the Kubernetes API.

Selects the identity from a loaded kubeconfig, turns its certificate
material into an ``ssl.SSLContext``, wraps that in an ``httpx.Client`` and
works out the base URI of the API server.
"""

import contextlib
import os
import ssl
import tempfile
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path

import httpx
import structlog

from .errors import BuildError, ConfigLoadError, IoError
from .kubeconfig.types import AuthInfo, Cluster, KubeConfig

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_SCHEME = "https"
DEFAULT_HOST = "localhost"
DEFAULT_PORT = 6443

SERVICE_HOST_ENV_VAR = "KUBERNETES_SERVICE_HOST"
SERVICE_PORT_ENV_VAR = "KUBERNETES_SERVICE_PORT"

_PORT_SCHEMES = {"443": "https", "80": "http"}


@dataclass(frozen=True)
class Connection:
    """A ready HTTP client bound to an API server base URI.

    Not safe for concurrent use; callers needing concurrency should build
    one connection per thread.
    """

    client: httpx.Client
    base_uri: str

    def close(self) -> None:
        """Close the underlying HTTP client if open."""
        if not self.client.is_closed:
            self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


@dataclass(frozen=True)
class CredentialPaths:
    ca_file: Path
    cert_file: Path
    key_file: Path


def select_identity(kubeconfig: KubeConfig) -> tuple[Cluster, AuthInfo]:
    """Pick the first cluster and the first user of a kubeconfig.

    ``current-context`` is not consulted.

    Raises:
        ConfigLoadError: If the kubeconfig has no clusters.
        BuildError: If the kubeconfig has no users.
    """
    if not kubeconfig.clusters:
        msg = "Kubeconfig contains no cluster"
        raise ConfigLoadError(msg)
    if not kubeconfig.auth_infos:
        msg = "Couldn't build http client: no identity found in kubeconfig"
        raise BuildError(msg)
    return kubeconfig.clusters[0].cluster, kubeconfig.auth_infos[0].auth_info


def _require_inline_material(cluster: Cluster, auth_info: AuthInfo) -> None:
    # Checked in this order so the first missing piece is the one reported.
    if auth_info.client_certificate_data is None:
        msg = "Couldn't get client certificate from kubeconfig"
        raise BuildError(msg)
    if cluster.certificate_authority_data is None:
        msg = "Couldn't get CA certificate from kubeconfig"
        raise BuildError(msg)
    if auth_info.client_key_data is None:
        msg = "Couldn't get client key from kubeconfig"
        raise BuildError(msg)


@contextlib.contextmanager
def materialized_credentials(
    ca: bytes,
    cert: bytes,
    key: bytes,
) -> Iterator[CredentialPaths]:
    """Write PEM material to a private temporary directory.

    The ``ssl`` module only loads trust roots and certificate chains from
    paths. The directory and its files are removed when the block exits,
    whether or not it raised.

    Raises:
        IoError: If the temporary files cannot be created.
    """
    try:
        tmp = tempfile.TemporaryDirectory(prefix="kubesync-")
    except OSError as err:
        msg = f"Couldn't create temporary credential directory: {err}"
        raise IoError(msg) from err

    with tmp as directory:
        paths = CredentialPaths(
            ca_file=Path(directory) / "ca.crt",
            cert_file=Path(directory) / "client.crt",
            key_file=Path(directory) / "client.key",
        )
        try:
            paths.ca_file.write_bytes(ca)
            paths.cert_file.write_bytes(cert)
            paths.key_file.write_bytes(key)
        except OSError as err:
            msg = f"Couldn't write temporary credential file: {err}"
            raise IoError(msg) from err
        yield paths


def build_ssl_context(
    ca: bytes,
    cert: bytes,
    key: bytes,
    insecure_skip_verify: bool = False,
) -> ssl.SSLContext:
    """Build a client SSL context presenting ``cert``/``key`` and trusting ``ca``.

    When ``insecure_skip_verify`` is true the server's hostname and
    certificate chain are not checked. Only use that against development
    clusters.

    Raises:
        BuildError: If the material cannot be loaded.
        IoError: If the material cannot be written to disk.
    """
    with materialized_credentials(ca, cert, key) as paths:
        try:
            context = ssl.create_default_context(cafile=str(paths.ca_file))
            context.load_cert_chain(
                certfile=str(paths.cert_file),
                keyfile=str(paths.key_file),
            )
        except (ssl.SSLError, OSError) as err:
            msg = (
                "Failed to initialize http client with client certificate: "
                f"{err}"
            )
            raise BuildError(msg) from err

    if insecure_skip_verify:
        logger.warning("TLS verification of the API server is disabled")
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def resolve_base_uri(
    scheme: str | None = None,
    host: str | None = None,
    port: int | None = None,
    use_service_discovery: bool = False,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Work out the API server base URI.

    With service discovery the host and port come from the
    ``KUBERNETES_SERVICE_HOST``/``KUBERNETES_SERVICE_PORT`` variables and
    the scheme is derived from the port. Missing variables fall back to the
    explicit values or defaults with a warning.

    Args:
        scheme: Explicit scheme, ignored in service discovery mode.
        host: Explicit host, or fallback when discovery finds none.
        port: Explicit port, or fallback when discovery finds none.
        use_service_discovery: Read host and port from the environment.
        environ: Environment to read, defaults to ``os.environ``.

    Returns:
        ``scheme://host:port``.
    """
    if environ is None:
        environ = os.environ

    if use_service_discovery:
        host_part = environ.get(SERVICE_HOST_ENV_VAR)
        if host_part is None:
            host_part = host or DEFAULT_HOST
            logger.warning(
                "Couldn't determine kubernetes service host from environment",
                variable=SERVICE_HOST_ENV_VAR,
                fallback=host_part,
            )
        port_part = environ.get(SERVICE_PORT_ENV_VAR)
        if port_part is None:
            scheme_part = DEFAULT_SCHEME
            port_part = str(port or DEFAULT_PORT)
            logger.warning(
                "Couldn't determine kubernetes service port from environment",
                variable=SERVICE_PORT_ENV_VAR,
                fallback=port_part,
            )
        else:
            scheme_part = _PORT_SCHEMES.get(port_part, DEFAULT_SCHEME)
    else:
        scheme_part = scheme or DEFAULT_SCHEME
        host_part = host or DEFAULT_HOST
        port_part = str(port or DEFAULT_PORT)

    return f"{scheme_part}://{host_part}:{port_part}"


def build_connection(
    kubeconfig: KubeConfig,
    scheme: str | None = None,
    host: str | None = None,
    port: int | None = None,
    use_service_discovery: bool = False,
    insecure_skip_verify: bool | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Connection:
    """Build a mutual-TLS connection from a loaded kubeconfig.

    Args:
        kubeconfig: Loaded configuration; its first cluster and user are used.
        scheme: Explicit scheme for the base URI.
        host: Explicit host for the base URI.
        port: Explicit port for the base URI.
        use_service_discovery: Resolve host and port from the environment.
        insecure_skip_verify: Disable server certificate verification. When
            None, the cluster's ``insecure-skip-tls-verify`` setting is used.
        timeout: HTTP timeout in seconds.

    Returns:
        Connection holding the client and base URI.

    Raises:
        ConfigLoadError: If the kubeconfig has no cluster.
        BuildError: If identity material is missing or unusable.
        DecodeError: If inline material is not valid base64.
        IoError: If temporary credential files cannot be written.
    """
    if timeout <= 0:
        msg = "timeout must be positive"
        raise ValueError(msg)

    cluster, auth_info = select_identity(kubeconfig)
    _require_inline_material(cluster, auth_info)

    ca = cluster.load_certificate_authority()
    cert = auth_info.load_client_certificate()
    key = auth_info.load_client_key()

    if insecure_skip_verify is None:
        insecure_skip_verify = bool(cluster.insecure_skip_tls_verify)

    context = build_ssl_context(ca, cert, key, insecure_skip_verify=insecure_skip_verify)
    base_uri = resolve_base_uri(
        scheme=scheme,
        host=host,
        port=port,
        use_service_discovery=use_service_discovery,
    )
    client = httpx.Client(
        verify=context,
        timeout=timeout,
        headers={"Accept": "application/json"},
    )
    logger.info(
        "Created API client",
        base_uri=base_uri,
        insecure_skip_verify=insecure_skip_verify,
    )
    return Connection(client=client, base_uri=base_uri)
