"""Shared fixtures: test PKI material and kubeconfig builders."""

import base64
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import yaml

FIXTURES_DIR = Path(__file__).parent / "fixtures"
PKI_DIR = FIXTURES_DIR / "pki"


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


@pytest.fixture
def ca_pem() -> bytes:
    return (PKI_DIR / "ca.crt").read_bytes()


@pytest.fixture
def client_cert_pem() -> bytes:
    return (PKI_DIR / "client.crt").read_bytes()


@pytest.fixture
def client_key_pem() -> bytes:
    return (PKI_DIR / "client.key").read_bytes()


@pytest.fixture
def fixture_kubeconfig_path() -> Path:
    """Kubeconfig with inline certificate, key and CA data."""
    return FIXTURES_DIR / "kubeconfig"


@pytest.fixture
def kubeconfig_data(
    ca_pem: bytes,
    client_cert_pem: bytes,
    client_key_pem: bytes,
) -> dict[str, Any]:
    """A complete kubeconfig document as a plain dict."""
    return {
        "apiVersion": "v1",
        "kind": "Config",
        "clusters": [
            {
                "name": "dev",
                "cluster": {
                    "server": "https://dev.example.com:6443",
                    "certificate-authority-data": b64(ca_pem),
                },
            },
        ],
        "users": [
            {
                "name": "admin",
                "user": {
                    "client-certificate-data": b64(client_cert_pem),
                    "client-key-data": b64(client_key_pem),
                },
            },
        ],
        "contexts": [
            {"name": "dev", "context": {"cluster": "dev", "user": "admin"}},
        ],
        "current-context": "dev",
    }


@pytest.fixture
def write_kubeconfig(tmp_path: Path) -> Callable[[dict[str, Any]], Path]:
    """Write a kubeconfig dict to a YAML file and return its path."""

    def _write(data: dict[str, Any]) -> Path:
        path = tmp_path / "kubeconfig"
        path.write_text(yaml.safe_dump(data))
        return path

    return _write
