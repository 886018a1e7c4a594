"""Streaming retrieval of list resources.

Response bodies are read in fixed-size chunks and fed into a
:class:`ListDecoder`, which tracks JSON structure across chunk boundaries
and only parses once the top-level document has been closed. Bodies are
never read past the end of the document.
"""

import enum
import json
import re
import time
from collections.abc import Iterator
from typing import Generic

import httpx
import pydantic
import structlog

from .connection import Connection
from .errors import ParseError, RequestError
from .resources import ListRequest, ResourceList, ResourceT

logger = structlog.get_logger(__name__)

CHUNK_SIZE = 4096

_NON_WHITESPACE = re.compile(rb"[^ \t\r\n]")
_STRUCTURAL = re.compile(rb'[\\"{}\[\]]')


class DecoderState(enum.Enum):
    EMPTY = "empty"
    ACCUMULATING = "accumulating"
    COMPLETE = "complete"
    FAILED = "failed"


class ListDecoder(Generic[ResourceT]):
    """Incremental decoder for a single list response body.

    Each call to :meth:`feed` scans only the newly appended bytes. Once the
    outermost object closes, the buffered document is parsed and validated
    against ``list_model``.

    States: ``EMPTY`` until the first byte arrives, ``ACCUMULATING`` while
    the document is open, then ``COMPLETE`` or ``FAILED``.
    """

    def __init__(
        self,
        list_model: type[ResourceList[ResourceT]],
        expected_kind: str | None = None,
    ):
        self._list_model = list_model
        self._expected_kind = expected_kind
        self._buffer = bytearray()
        self._pos = 0
        self._started = False
        self._in_string = False
        self._depth = 0
        self._state = DecoderState.EMPTY
        self._result: ResourceList[ResourceT] | None = None

    @property
    def state(self) -> DecoderState:
        return self._state

    @property
    def buffered(self) -> int:
        """Number of bytes received so far."""
        return len(self._buffer)

    def feed(self, chunk: bytes) -> ResourceList[ResourceT] | None:
        """Append a chunk and try to complete the list.

        Returns:
            The decoded list once the document is complete, otherwise None
            to signal that more data is needed.

        Raises:
            ParseError: If the body is malformed or not the expected list.
        """
        if self._state is DecoderState.COMPLETE:
            return self._result
        if self._state is DecoderState.FAILED:
            msg = "Decoder has already failed"
            raise ParseError(msg)
        if not chunk:
            return None

        self._buffer.extend(chunk)
        self._state = DecoderState.ACCUMULATING
        end = self._scan()
        if end is None:
            return None

        self._result = self._parse(bytes(self._buffer[:end]))
        self._state = DecoderState.COMPLETE
        return self._result

    def finish(self) -> ResourceList[ResourceT]:
        """Signal end of input.

        Raises:
            ParseError: If the document was never completed.
        """
        if self._state is DecoderState.COMPLETE and self._result is not None:
            return self._result
        msg = (
            "Response body ended before a complete document was received "
            f"({len(self._buffer)} bytes buffered)"
        )
        raise self._fail(msg)

    def _fail(self, msg: str) -> ParseError:
        self._state = DecoderState.FAILED
        return ParseError(msg)

    def _scan(self) -> int | None:
        """Advance through unscanned bytes; return the document end if closed."""
        buf = self._buffer
        pos = self._pos

        if not self._started:
            match = _NON_WHITESPACE.search(buf, pos)
            if match is None:
                self._pos = len(buf)
                return None
            if match.group() not in (b"{", b"["):
                preview = bytes(buf[match.start() : match.start() + 32])
                msg = f"Response body is not a JSON document: starts with {preview!r}"
                raise self._fail(msg)
            self._started = True
            pos = match.start()

        while True:
            match = _STRUCTURAL.search(buf, pos)
            if match is None:
                self._pos = len(buf)
                return None
            token = match.group()
            at = match.start()

            if self._in_string:
                if token == b"\\":
                    if at + 1 >= len(buf):
                        # Escaped character not received yet.
                        self._pos = at
                        return None
                    pos = at + 2
                    continue
                if token == b'"':
                    self._in_string = False
                pos = at + 1
                continue

            if token == b'"':
                self._in_string = True
            elif token in (b"{", b"["):
                self._depth += 1
            elif token in (b"}", b"]"):
                self._depth -= 1
                if self._depth == 0:
                    self._pos = at + 1
                    return at + 1
            pos = at + 1

    def _parse(self, document: bytes) -> ResourceList[ResourceT]:
        try:
            data = json.loads(document)
        except (json.JSONDecodeError, UnicodeDecodeError) as err:
            raise self._fail(f"Couldn't parse response body: {err}") from err

        if not isinstance(data, dict):
            msg = f"Expected a {self._expected_kind or 'list'} object but got {_summarize(data)}"
            raise self._fail(msg)

        kind = data.get("kind")
        if kind == "Status" or (
            self._expected_kind is not None
            and kind is not None
            and kind != self._expected_kind
        ):
            msg = f"Expected {self._expected_kind or 'a list'} but got {_summarize(data)}"
            raise self._fail(msg)
        if not isinstance(data.get("items"), list):
            msg = f"Expected a list response with items but got {_summarize(data)}"
            raise self._fail(msg)

        try:
            return self._list_model.model_validate(data)
        except pydantic.ValidationError as err:
            raise self._fail(f"Response body does not match {self._expected_kind}: {err}") from err


def _summarize(data: object) -> str:
    text = json.dumps(data)
    return text if len(text) <= 200 else f"{text[:200]}..."


def _read_list(
    chunks: Iterator[bytes],
    decoder: ListDecoder[ResourceT],
) -> ResourceList[ResourceT]:
    while True:
        try:
            chunk = next(chunks, None)
        except httpx.HTTPError as err:
            msg = f"Got error while reading response body: {err}"
            raise ParseError(msg) from err
        if chunk is None:
            return decoder.finish()
        result = decoder.feed(chunk)
        if result is not None:
            return result


def fetch_list(
    connection: Connection,
    request: ListRequest[ResourceT],
) -> list[ResourceT]:
    """Perform a list request and decode the streamed body.

    Args:
        connection: Client and base URI to send the request with.
        request: Descriptor of the list call.

    Returns:
        The listed items in the order the server returned them.

    Raises:
        RequestError: If the request fails to send or returns a non-2xx status.
        ParseError: If the body is malformed, truncated or not the expected list.
    """
    url = f"{connection.base_uri}{request.path}"
    decoder = ListDecoder(request.list_model, expected_kind=request.kind)
    start_time = time.time()

    logger.debug(
        "Making API request",
        method=request.method,
        url=url,
        params=request.params,
    )
    try:
        with connection.client.stream(
            request.method,
            url,
            params=request.params,
        ) as response:
            if not response.is_success:
                logger.error(
                    "API returned error status",
                    url=url,
                    status_code=response.status_code,
                )
                msg = f"API request to {url} failed with status {response.status_code}"
                raise RequestError(msg)
            resource_list = _read_list(
                response.iter_bytes(chunk_size=CHUNK_SIZE),
                decoder,
            )
    except httpx.HTTPError as err:
        duration = time.time() - start_time
        logger.exception(
            "API request failed",
            url=url,
            duration_seconds=round(duration, 3),
        )
        msg = f"Couldn't send request to {url}: {err}"
        raise RequestError(msg) from err

    duration = time.time() - start_time
    logger.debug(
        "API request completed",
        url=url,
        items=len(resource_list.items),
        bytes=decoder.buffered,
        duration_seconds=round(duration, 3),
    )
    return resource_list.items
