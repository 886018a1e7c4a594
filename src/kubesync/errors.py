"""Exception hierarchy for the Kubernetes client.

Every public operation raises a subclass of :class:`KubernetesError`.
Underlying library errors are chained as ``__cause__``.
"""


class KubernetesError(Exception):
    """Base class for all client errors."""


class IoError(KubernetesError):
    """Raised when a file cannot be opened or read."""


class ConfigLoadError(KubernetesError):
    """Raised when the kubeconfig cannot be parsed or is structurally unusable."""


class BuildError(KubernetesError):
    """Raised when identity material is missing or the HTTP client cannot be built."""


class DecodeError(KubernetesError):
    """Raised when inline credential data is not valid base64."""


class InvalidDataError(KubernetesError):
    """Raised when an operation is given no usable input."""


class RequestError(KubernetesError):
    """Raised when a request cannot be sent or the API answers with a non-2xx status."""


class ParseError(KubernetesError):
    """Raised when a response body is malformed or not the expected list."""


class DatetimeFormatError(KubernetesError):
    """Raised when a time filter is not an RFC 3339 timestamp."""
