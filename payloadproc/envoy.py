"""External-processing message types and helpers for headers and chunked bodies."""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

# Some proxies cap streamed chunks at 64KB; stay below that with a margin.
BODY_BYTE_LIMIT = 62000


@dataclass
class HeaderValue:
    """A header key with either a text value or a raw byte value."""

    key: str
    value: str = ""
    raw_value: bytes = b""


@dataclass
class HeaderValueOption:
    """A header to set on a request or response."""

    header: HeaderValue


@dataclass
class HeaderMutation:
    """Headers to set and to remove."""

    set_headers: list[HeaderValueOption] = field(default_factory=list)
    remove_headers: list[str] = field(default_factory=list)


@dataclass
class StreamedBodyResponse:
    """One chunk of a streamed body replacement."""

    body: bytes = b""
    end_of_stream: bool = False


@dataclass
class CommonResponse:
    """Mutations shared by header and body responses."""

    header_mutation: HeaderMutation | None = None
    streamed_response: StreamedBodyResponse | None = None


@dataclass
class HeadersResponse:
    """Reply to a headers message."""

    response: CommonResponse | None = None


@dataclass
class BodyResponse:
    """Reply to a body message."""

    response: CommonResponse | None = None


@dataclass
class ImmediateResponse:
    """A reply sent straight to the client, bypassing the upstream."""

    status: int
    body: bytes = b""


class ResponseKind(enum.Enum):
    """Which phase of the stream a processing response answers."""

    REQUEST_HEADERS = "request_headers"
    REQUEST_BODY = "request_body"
    REQUEST_TRAILERS = "request_trailers"
    RESPONSE_HEADERS = "response_headers"
    RESPONSE_BODY = "response_body"
    RESPONSE_TRAILERS = "response_trailers"
    IMMEDIATE_RESPONSE = "immediate_response"


@dataclass
class ProcessingResponse:
    """A message sent back to the proxy."""

    kind: ResponseKind
    response: HeadersResponse | BodyResponse | ImmediateResponse | None = None


def get_header_value(header: HeaderValue) -> str:
    """Return the raw value if present, otherwise the text value."""
    if header.raw_value:
        return bytes(header.raw_value).decode("utf-8", errors="replace")
    return header.value


def extract_header_value(headers: Iterable[HeaderValue] | None, header_key: str) -> str:
    """Find a header case-insensitively; return "" when it is absent."""
    wanted = header_key.lower()
    for header in headers or ():
        if header.key.lower() == wanted:
            return get_header_value(header)
    return ""


def generate_headers_mutation(headers: Mapping[str, str]) -> list[HeaderValueOption]:
    """Turn a mapping of header names to values into set-header options."""
    return [
        HeaderValueOption(header=HeaderValue(key=key, raw_value=value.encode("utf-8")))
        for key, value in headers.items()
    ]


def build_chunked_body_responses(body: bytes, set_eos: bool) -> list[CommonResponse]:
    """Split a body into chunks of at most BODY_BYTE_LIMIT bytes.

    When set_eos is true, only the last chunk is marked end of stream.
    An empty body yields a single empty chunk.
    """
    body = bytes(body)
    total = len(body)
    if total == 0:
        return [CommonResponse(streamed_response=StreamedBodyResponse(body=body, end_of_stream=set_eos))]
    return [
        CommonResponse(
            streamed_response=StreamedBodyResponse(
                body=body[start : start + BODY_BYTE_LIMIT],
                end_of_stream=set_eos and start + BODY_BYTE_LIMIT >= total,
            )
        )
        for start in range(0, total, BODY_BYTE_LIMIT)
    ]


def add_streamed_response_body(
    responses: Sequence[ProcessingResponse], body: bytes
) -> list[ProcessingResponse]:
    """Return the responses followed by the body as end-of-stream response-body chunks."""
    chunks = [
        ProcessingResponse(kind=ResponseKind.RESPONSE_BODY, response=BodyResponse(response=common))
        for common in build_chunked_body_responses(body, True)
    ]
    return [*responses, *chunks]