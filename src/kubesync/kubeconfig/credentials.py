"""Resolution of credential values that are either inline or file-referenced.

Kubeconfig entries carry certificate and key material in two forms: an
inline ``*-data`` field holding base64 text, or a path to a file on disk.
The inline form always wins when both are set.
"""

import base64
import binascii
from pathlib import Path

import structlog

from ..errors import DecodeError, InvalidDataError, IoError

logger = structlog.get_logger(__name__)


def decode_base64(value: str) -> bytes:
    """Strictly decode base64 text, ignoring embedded whitespace.

    Raises:
        DecodeError: If ``value`` is not valid base64.
    """
    compact = "".join(value.split())
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as err:
        msg = f"Couldn't decode base64: {err}"
        raise DecodeError(msg) from err


def resolve_credential(inline: str | None, path: str | Path | None) -> bytes:
    """Return the raw bytes of a credential value.

    Args:
        inline: Base64 encoded credential, used when set.
        path: File holding the credential, read verbatim when ``inline`` is unset.

    Returns:
        Decoded or file contents.

    Raises:
        DecodeError: If ``inline`` is malformed base64.
        IoError: If ``path`` cannot be read.
        InvalidDataError: If neither source is set.
    """
    if inline is not None:
        return decode_base64(inline)

    if path is not None:
        try:
            data = Path(path).read_bytes()
        except OSError as err:
            msg = f"Couldn't read file {path}: {err}"
            raise IoError(msg) from err
        logger.debug("Read credential file", path=str(path), size=len(data))
        return data

    msg = "Neither inline data nor a file path was provided"
    raise InvalidDataError(msg)
