"""Tests for building mutual-TLS connections from a kubeconfig."""

import ssl
import tempfile
from unittest.mock import patch

import httpx
import pytest

from kubesync import connection, errors
from kubesync.kubeconfig import types


@pytest.fixture
def kubeconfig(kubeconfig_data) -> types.KubeConfig:
    return types.KubeConfig.model_validate(kubeconfig_data)


@pytest.fixture
def isolated_tempdir(monkeypatch, tmp_path):
    """Route tempfile into a directory the test can inspect."""
    directory = tmp_path / "tmp"
    directory.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(directory))
    return directory


# ---------------------------------------------------------------------------
# Identity selection
# ---------------------------------------------------------------------------


def test_first_cluster_and_user_are_selected(kubeconfig_data):
    """The first entries win even when current-context names others."""
    kubeconfig_data["clusters"].append(
        {"name": "prod", "cluster": {"server": "https://prod:6443"}},
    )
    kubeconfig_data["users"].append({"name": "ops", "user": {"token": "t"}})
    kubeconfig_data["contexts"].append(
        {"name": "prod", "context": {"cluster": "prod", "user": "ops"}},
    )
    kubeconfig_data["current-context"] = "prod"
    config = types.KubeConfig.model_validate(kubeconfig_data)

    cluster, auth_info = connection.select_identity(config)

    assert cluster.server == "https://dev.example.com:6443"
    assert auth_info.token is None


def test_no_cluster_raises_config_load_error(kubeconfig_data):
    kubeconfig_data["clusters"] = []
    config = types.KubeConfig.model_validate(kubeconfig_data)
    with pytest.raises(errors.ConfigLoadError):
        connection.build_connection(config)


def test_no_user_raises_build_error(kubeconfig_data):
    kubeconfig_data["users"] = []
    config = types.KubeConfig.model_validate(kubeconfig_data)
    with pytest.raises(errors.BuildError, match="no identity found"):
        connection.build_connection(config)


# ---------------------------------------------------------------------------
# Missing material, reported in check order
# ---------------------------------------------------------------------------


def _strip(kubeconfig_data, *, cert=False, ca=False, key=False):
    user = kubeconfig_data["users"][0]["user"]
    cluster = kubeconfig_data["clusters"][0]["cluster"]
    if cert:
        del user["client-certificate-data"]
    if ca:
        del cluster["certificate-authority-data"]
    if key:
        del user["client-key-data"]
    return types.KubeConfig.model_validate(kubeconfig_data)


def test_all_material_missing_reports_client_certificate(kubeconfig_data):
    config = _strip(kubeconfig_data, cert=True, ca=True, key=True)
    with pytest.raises(errors.BuildError, match="client certificate"):
        connection.build_connection(config)


def test_ca_and_key_missing_reports_ca(kubeconfig_data):
    config = _strip(kubeconfig_data, ca=True, key=True)
    with pytest.raises(errors.BuildError, match="CA certificate"):
        connection.build_connection(config)


def test_only_key_missing_reports_client_key(kubeconfig_data):
    config = _strip(kubeconfig_data, key=True)
    with pytest.raises(errors.BuildError, match="client key"):
        connection.build_connection(config)


def test_file_referenced_material_is_not_enough(kubeconfig_data, tmp_path):
    """Only inline certificate data is accepted for building the client."""
    cert_file = tmp_path / "client.crt"
    cert_file.write_text("cert")
    user = kubeconfig_data["users"][0]["user"]
    del user["client-certificate-data"]
    user["client-certificate"] = str(cert_file)
    config = types.KubeConfig.model_validate(kubeconfig_data)

    with pytest.raises(errors.BuildError, match="client certificate"):
        connection.build_connection(config)


def test_malformed_certificate_data_raises_decode_error(kubeconfig_data):
    kubeconfig_data["users"][0]["user"]["client-certificate-data"] = "%%%"
    config = types.KubeConfig.model_validate(kubeconfig_data)
    with pytest.raises(errors.DecodeError):
        connection.build_connection(config)


# ---------------------------------------------------------------------------
# SSL context
# ---------------------------------------------------------------------------


def test_ssl_context_verifies_by_default(ca_pem, client_cert_pem, client_key_pem):
    context = connection.build_ssl_context(ca_pem, client_cert_pem, client_key_pem)
    assert context.verify_mode == ssl.CERT_REQUIRED
    assert context.check_hostname is True


def test_ssl_context_insecure_disables_verification(
    ca_pem,
    client_cert_pem,
    client_key_pem,
):
    context = connection.build_ssl_context(
        ca_pem,
        client_cert_pem,
        client_key_pem,
        insecure_skip_verify=True,
    )
    assert context.verify_mode == ssl.CERT_NONE
    assert context.check_hostname is False


def test_invalid_key_raises_build_error(ca_pem, client_cert_pem):
    with pytest.raises(errors.BuildError, match="client certificate"):
        connection.build_ssl_context(ca_pem, client_cert_pem, b"not a key")


def test_invalid_ca_raises_build_error(client_cert_pem, client_key_pem):
    with pytest.raises(errors.BuildError):
        connection.build_ssl_context(b"garbage", client_cert_pem, client_key_pem)


def test_credential_files_removed_after_build(
    isolated_tempdir,
    ca_pem,
    client_cert_pem,
    client_key_pem,
):
    connection.build_ssl_context(ca_pem, client_cert_pem, client_key_pem)
    assert list(isolated_tempdir.iterdir()) == []


def test_credential_files_removed_after_failure(isolated_tempdir, ca_pem, client_cert_pem):
    with pytest.raises(errors.BuildError):
        connection.build_ssl_context(ca_pem, client_cert_pem, b"broken")
    assert list(isolated_tempdir.iterdir()) == []


def test_materialized_files_hold_the_given_bytes(isolated_tempdir):
    with connection.materialized_credentials(b"ca", b"cert", b"key") as paths:
        assert paths.ca_file.read_bytes() == b"ca"
        assert paths.cert_file.read_bytes() == b"cert"
        assert paths.key_file.read_bytes() == b"key"
    assert not paths.ca_file.exists()


# ---------------------------------------------------------------------------
# Connection
# ---------------------------------------------------------------------------


def test_build_connection_returns_client_and_base_uri(kubeconfig):
    with connection.build_connection(kubeconfig, host="10.0.0.1", port=8443) as conn:
        assert isinstance(conn.client, httpx.Client)
        assert conn.base_uri == "https://10.0.0.1:8443"
        assert conn.client.headers["Accept"] == "application/json"
    assert conn.client.is_closed


def test_insecure_flag_defaults_to_cluster_setting(kubeconfig_data):
    kubeconfig_data["clusters"][0]["cluster"]["insecure-skip-tls-verify"] = True
    config = types.KubeConfig.model_validate(kubeconfig_data)

    with patch(
        "kubesync.connection.build_ssl_context",
        wraps=connection.build_ssl_context,
    ) as build:
        connection.build_connection(config).close()

    assert build.call_args.kwargs["insecure_skip_verify"] is True


def test_explicit_insecure_flag_overrides_cluster_setting(kubeconfig_data):
    kubeconfig_data["clusters"][0]["cluster"]["insecure-skip-tls-verify"] = True
    config = types.KubeConfig.model_validate(kubeconfig_data)

    with patch(
        "kubesync.connection.build_ssl_context",
        wraps=connection.build_ssl_context,
    ) as build:
        connection.build_connection(config, insecure_skip_verify=False).close()

    assert build.call_args.kwargs["insecure_skip_verify"] is False


def test_non_positive_timeout_rejected(kubeconfig):
    with pytest.raises(ValueError, match="timeout"):
        connection.build_connection(kubeconfig, timeout=0)


# ---------------------------------------------------------------------------
# Base URI
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("scheme", "host", "port", "expected"),
    [
        (None, None, None, "https://localhost:6443"),
        ("http", None, None, "http://localhost:6443"),
        (None, "api.local", None, "https://api.local:6443"),
        (None, None, 8443, "https://localhost:8443"),
        ("http", "api.local", 8080, "http://api.local:8080"),
    ],
)
def test_explicit_base_uri(scheme, host, port, expected):
    uri = connection.resolve_base_uri(scheme, host, port, environ={})
    assert uri == expected


def test_explicit_mode_ignores_environment():
    environ = {"KUBERNETES_SERVICE_HOST": "10.96.0.1", "KUBERNETES_SERVICE_PORT": "443"}
    uri = connection.resolve_base_uri(environ=environ)
    assert uri == "https://localhost:6443"


@pytest.mark.parametrize(
    ("port_var", "expected"),
    [
        ("443", "https://10.96.0.1:443"),
        ("80", "http://10.96.0.1:80"),
        ("6443", "https://10.96.0.1:6443"),
    ],
)
def test_service_discovery_scheme_from_port(port_var, expected):
    environ = {"KUBERNETES_SERVICE_HOST": "10.96.0.1", "KUBERNETES_SERVICE_PORT": port_var}
    uri = connection.resolve_base_uri(
        scheme="ftp",
        use_service_discovery=True,
        environ=environ,
    )
    assert uri == expected


def test_service_discovery_missing_host_falls_back():
    environ = {"KUBERNETES_SERVICE_PORT": "443"}
    assert (
        connection.resolve_base_uri(use_service_discovery=True, environ=environ)
        == "https://localhost:443"
    )
    assert (
        connection.resolve_base_uri(
            host="api.local",
            use_service_discovery=True,
            environ=environ,
        )
        == "https://api.local:443"
    )


def test_service_discovery_missing_port_falls_back_to_https():
    environ = {"KUBERNETES_SERVICE_HOST": "10.96.0.1"}
    assert (
        connection.resolve_base_uri(
            scheme="http",
            use_service_discovery=True,
            environ=environ,
        )
        == "https://10.96.0.1:6443"
    )
    assert (
        connection.resolve_base_uri(
            port=9443,
            use_service_discovery=True,
            environ=environ,
        )
        == "https://10.96.0.1:9443"
    )


def test_service_discovery_reads_process_environment(monkeypatch):
    monkeypatch.setenv("KUBERNETES_SERVICE_HOST", "172.20.0.1")
    monkeypatch.setenv("KUBERNETES_SERVICE_PORT", "80")
    assert connection.resolve_base_uri(use_service_discovery=True) == "http://172.20.0.1:80"


def test_service_discovery_fallbacks_log_warnings():
    with patch.object(connection, "logger") as mock_logger:
        connection.resolve_base_uri(use_service_discovery=True, environ={})
    assert mock_logger.warning.call_count == 2
