"""Pydantic models for the kubeconfig document.

Field names follow Python conventions; the YAML keys are kept as aliases so
documents written by ``kubectl`` validate unchanged. Models accept unknown
keys so newer kubeconfig fields survive a round trip.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .credentials import resolve_credential


class _KubeConfigModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class NamedExtension(_KubeConfigModel):
    """Associates a name with an opaque extension value."""

    name: str
    extension: Any = None


class Preferences(_KubeConfigModel):
    """CLI preferences."""

    colors: bool | None = None
    extensions: list[NamedExtension] | None = None


class Cluster(_KubeConfigModel):
    """Information needed to reach a cluster."""

    server: str
    insecure_skip_tls_verify: bool | None = Field(
        None,
        alias="insecure-skip-tls-verify",
    )
    certificate_authority: str | None = Field(None, alias="certificate-authority")
    certificate_authority_data: str | None = Field(
        None,
        alias="certificate-authority-data",
    )

    def load_certificate_authority(self) -> bytes | None:
        """Return the CA bundle, or None when the cluster names none."""
        if self.certificate_authority_data is None and self.certificate_authority is None:
            return None
        return resolve_credential(
            self.certificate_authority_data,
            self.certificate_authority,
        )


class NamedCluster(_KubeConfigModel):
    name: str
    cluster: Cluster


class AuthProviderConfig(_KubeConfigModel):
    """Credentials delegated to a cloud auth provider."""

    name: str
    config: dict[str, str] = Field(default_factory=dict)


class ExecConfig(_KubeConfigModel):
    """Credential plugin invocation."""

    api_version: str | None = Field(None, alias="apiVersion")
    command: str
    args: list[str] | None = None
    env: list[dict[str, str]] | None = None


class AuthInfo(_KubeConfigModel):
    """Identity material presented to the cluster.

    Only client certificates are used to build connections. The other
    mechanisms are kept so the document is modelled completely.
    """

    username: str | None = None
    password: str | None = None

    token: str | None = None
    token_file: str | None = Field(None, alias="tokenFile")

    client_certificate: str | None = Field(None, alias="client-certificate")
    client_certificate_data: str | None = Field(None, alias="client-certificate-data")
    client_key: str | None = Field(None, alias="client-key")
    client_key_data: str | None = Field(None, alias="client-key-data")

    impersonate: str | None = Field(None, alias="as")
    impersonate_groups: list[str] | None = Field(None, alias="as-groups")

    auth_provider: AuthProviderConfig | None = Field(None, alias="auth-provider")
    exec: ExecConfig | None = None

    def load_client_certificate(self) -> bytes:
        return resolve_credential(self.client_certificate_data, self.client_certificate)

    def load_client_key(self) -> bytes:
        return resolve_credential(self.client_key_data, self.client_key)


class NamedAuthInfo(_KubeConfigModel):
    name: str
    auth_info: AuthInfo = Field(alias="user")


class Context(_KubeConfigModel):
    """A named pairing of cluster, user and default namespace."""

    cluster: str
    user: str
    namespace: str | None = None
    extensions: list[NamedExtension] | None = None


class NamedContext(_KubeConfigModel):
    name: str
    context: Context


class KubeConfig(_KubeConfigModel):
    """Top-level kubeconfig document."""

    kind: str | None = None
    api_version: str | None = Field(None, alias="apiVersion")
    preferences: Preferences | None = None
    clusters: list[NamedCluster]
    auth_infos: list[NamedAuthInfo] = Field(alias="users")
    contexts: list[NamedContext]
    current_context: str = Field(alias="current-context")
    extensions: list[NamedExtension] | None = None
