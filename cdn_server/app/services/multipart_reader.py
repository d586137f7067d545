"""Streaming reader for the first field of a multipart/form-data body.

The upload endpoint stores whatever the first part of the form carries, so
the body is fed through ``python_multipart`` chunk by chunk instead of being
spooled by ``Request.form()``. That lets the caller resolve the target path
as soon as the part headers are known and abort as soon as the payload grows
past the size limit.
"""
from collections import deque
from typing import AsyncIterator, Deque, List, NamedTuple, Optional, Tuple

from python_multipart.exceptions import FormParserError
from python_multipart.multipart import MultipartParser, parse_options_header
from starlette.requests import ClientDisconnect

from cdn_server.app.errors import BadRequestError, MISSING_FIELD, IMPROPER_BYTES

PART_BEGIN = "part_begin"
PART_DATA = "part_data"
PART_END = "part_end"
HEADER_FIELD = "header_field"
HEADER_VALUE = "header_value"
HEADER_END = "header_end"
HEADERS_FINISHED = "headers_finished"
END = "end"


class MultipartField(NamedTuple):
    name: Optional[str]
    filename: Optional[str]
    content_type: Optional[str]


def _decode(value: Optional[bytes]) -> Optional[str]:
    if value is None:
        return None
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError:
        return value.decode("latin-1")


class FirstFieldReader:
    def __init__(self, content_type: Optional[str], stream: AsyncIterator[bytes]):
        self._content_type = content_type
        self._stream = stream
        self._events: Deque[Tuple[str, bytes]] = deque()
        self._parser: Optional[MultipartParser] = None
        self._exhausted = False
        self._field: Optional[MultipartField] = None

    def _create_parser(self) -> MultipartParser:
        media_type, params = parse_options_header(self._content_type)
        boundary = params.get(b"boundary")
        if media_type != b"multipart/form-data" or not boundary:
            raise BadRequestError(MISSING_FIELD)

        def on_data(event):
            def callback(data: bytes, start: int, end: int) -> None:
                self._events.append((event, data[start:end]))
            return callback

        def on_notify(event):
            def callback() -> None:
                self._events.append((event, b""))
            return callback

        return MultipartParser(boundary, {
            "on_part_begin": on_notify(PART_BEGIN),
            "on_part_data": on_data(PART_DATA),
            "on_part_end": on_notify(PART_END),
            "on_header_field": on_data(HEADER_FIELD),
            "on_header_value": on_data(HEADER_VALUE),
            "on_header_end": on_notify(HEADER_END),
            "on_headers_finished": on_notify(HEADERS_FINISHED),
            "on_end": on_notify(END),
        })

    async def _next_event(self, error_message: str) -> Optional[Tuple[str, bytes]]:
        """Pop the next parser event, reading more of the body when needed.

        Returns None once the body is exhausted.
        """
        while not self._events:
            if self._exhausted:
                return None
            try:
                chunk = await self._stream.__anext__()
            except StopAsyncIteration:
                self._exhausted = True
                continue
            except ClientDisconnect:
                raise BadRequestError(error_message)

            if not chunk:
                continue
            try:
                self._parser.write(chunk)
            except FormParserError:
                raise BadRequestError(error_message)
        return self._events.popleft()

    async def read_field(self) -> Optional[MultipartField]:
        """Read up to the end of the first part's headers.

        Returns None when the form holds no part at all.
        """
        if self._parser is None:
            self._parser = self._create_parser()

        headers: List[Tuple[bytes, bytes]] = []
        header_field = b""
        header_value = b""
        started = False

        while True:
            event = await self._next_event(MISSING_FIELD)
            if event is None:
                if started:
                    raise BadRequestError(MISSING_FIELD)
                return None

            kind, data = event
            if kind == PART_BEGIN:
                started = True
            elif kind == HEADER_FIELD:
                header_field += data
            elif kind == HEADER_VALUE:
                header_value += data
            elif kind == HEADER_END:
                headers.append((header_field.lower(), header_value))
                header_field = b""
                header_value = b""
            elif kind == HEADERS_FINISHED:
                self._field = self._build_field(headers)
                return self._field
            elif kind == END:
                return None

    @staticmethod
    def _build_field(headers: List[Tuple[bytes, bytes]]) -> MultipartField:
        name = filename = content_type = None
        for field, value in headers:
            if field == b"content-disposition":
                _, options = parse_options_header(value)
                name = _decode(options.get(b"name"))
                filename = _decode(options.get(b"filename"))
            elif field == b"content-type":
                content_type = _decode(value)
        return MultipartField(name=name, filename=filename or None, content_type=content_type)

    async def iter_data(self) -> AsyncIterator[bytes]:
        """Yield the first part's payload until the part ends.

        A body that ends, disconnects or fails to parse before the part is
        complete raises BadRequestError.
        """
        if self._field is None:
            raise RuntimeError("read_field() must be called before iter_data()")

        while True:
            event = await self._next_event(IMPROPER_BYTES)
            if event is None:
                raise BadRequestError(IMPROPER_BYTES)

            kind, data = event
            if kind == PART_DATA:
                if data:
                    yield data
            elif kind == PART_END:
                return
