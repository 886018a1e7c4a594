"""Kubeconfig package.

Typed models for the kubeconfig document, a loader for YAML files, and
resolution of inline or file-referenced credential material.

Exports:
    KubeConfig: Validated top-level kubeconfig document.
    load_kubeconfig: Read and validate a kubeconfig file.
    resolve_credential: Turn an inline/path credential pair into bytes.
    DEFAULT_KUBECONFIG_PATH: Per-user default kubeconfig location.
    types: Module containing the Pydantic models.
"""

from . import types
from .credentials import decode_base64, resolve_credential
from .loader import DEFAULT_KUBECONFIG_PATH, kubeconfig_path, load_kubeconfig
from .types import KubeConfig

__all__ = [
    "DEFAULT_KUBECONFIG_PATH",
    "KubeConfig",
    "decode_base64",
    "kubeconfig_path",
    "load_kubeconfig",
    "resolve_credential",
    "types",
]
