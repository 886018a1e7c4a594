"""Loading of kubeconfig documents from disk."""

from pathlib import Path

import pydantic
import structlog
import yaml

from ..errors import ConfigLoadError, IoError
from .types import KubeConfig

logger = structlog.get_logger(__name__)

DEFAULT_KUBECONFIG_PATH = "~/.kube/config"


def kubeconfig_path(path: str | Path | None = None) -> Path:
    """Return the kubeconfig location, defaulting to the per-user file."""
    return Path(path or DEFAULT_KUBECONFIG_PATH).expanduser()


def load_kubeconfig(path: str | Path | None = None) -> KubeConfig:
    """Load and validate a kubeconfig YAML document.

    Args:
        path: Location of the document. Defaults to ``~/.kube/config``.

    Returns:
        The validated configuration.

    Raises:
        IoError: If the file cannot be opened or read.
        ConfigLoadError: If the file is not YAML or does not match the schema.
    """
    resolved = kubeconfig_path(path)
    try:
        with resolved.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as err:
        msg = f"Couldn't read kubeconfig {resolved}: {err}"
        raise IoError(msg) from err
    except (yaml.YAMLError, UnicodeDecodeError) as err:
        msg = f"Kubeconfig {resolved} is not valid YAML: {err}"
        raise ConfigLoadError(msg) from err

    if not isinstance(data, dict):
        msg = f"Kubeconfig {resolved} does not contain a mapping"
        raise ConfigLoadError(msg)

    try:
        config = KubeConfig.model_validate(data)
    except pydantic.ValidationError as err:
        msg = f"Could not load kubeconfig {resolved}: {err}"
        raise ConfigLoadError(msg) from err

    logger.debug(
        "Loaded kubeconfig",
        path=str(resolved),
        clusters=len(config.clusters),
        users=len(config.auth_infos),
        contexts=len(config.contexts),
    )
    return config
