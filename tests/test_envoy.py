import os

import pytest

from payloadproc.envoy import (
    BODY_BYTE_LIMIT,
    BodyResponse,
    HeaderValue,
    ImmediateResponse,
    ProcessingResponse,
    ResponseKind,
    add_streamed_response_body,
    build_chunked_body_responses,
    extract_header_value,
    generate_headers_mutation,
    get_header_value,
)


@pytest.mark.parametrize(
    ("count", "expected_messages"),
    [
        (0, 1),
        (BODY_BYTE_LIMIT - 1000, 1),
        (BODY_BYTE_LIMIT, 1),
        (BODY_BYTE_LIMIT + 1, 2),
        (BODY_BYTE_LIMIT + 1000, 2),
        (BODY_BYTE_LIMIT * 2 + 1000, 3),
    ],
    ids=["zero case", "below limit", "at limit", "off by one", "above limit", "well above limit"],
)
def test_build_chunked_body_responses(count, expected_messages):
    body = os.urandom(count)
    responses = build_chunked_body_responses(body, True)
    assert len(responses) == expected_messages
    flags = [r.streamed_response.end_of_stream for r in responses]
    assert flags == [False] * (len(responses) - 1) + [True]
    assert b"".join(r.streamed_response.body for r in responses) == body
    assert all(len(r.streamed_response.body) <= BODY_BYTE_LIMIT for r in responses)


def test_chunks_without_eos():
    body = os.urandom(BODY_BYTE_LIMIT * 2)
    responses = build_chunked_body_responses(body, False)
    assert len(responses) == 2
    assert not any(r.streamed_response.end_of_stream for r in responses)


def test_empty_body_without_eos():
    responses = build_chunked_body_responses(b"", False)
    assert len(responses) == 1
    assert responses[0].streamed_response.body == b""
    assert responses[0].streamed_response.end_of_stream is False


def test_chunk_size_is_62000_bytes():
    responses = build_chunked_body_responses(b"x" * 62001, True)
    assert [len(r.streamed_response.body) for r in responses] == [62000, 1]


def test_get_header_value_prefers_raw():
    assert get_header_value(HeaderValue(key="k", value="text", raw_value=b"raw")) == "raw"
    assert get_header_value(HeaderValue(key="k", value="text")) == "text"


def test_extract_header_value_case_insensitive():
    headers = [
        HeaderValue(key="Content-Type", raw_value=b"application/json"),
        HeaderValue(key="x-model", value="llama"),
    ]
    assert extract_header_value(headers, "content-type") == "application/json"
    assert extract_header_value(headers, "X-MODEL") == "llama"


def test_extract_header_value_missing():
    assert extract_header_value([HeaderValue(key="a", value="1")], "b") == ""
    assert extract_header_value(None, "a") == ""
    assert extract_header_value([], "a") == ""


def test_generate_headers_mutation_round_trip():
    headers = {"X-Gateway-Model-Name": "model-a", "x-other": "v"}
    options = generate_headers_mutation(headers)
    assert len(options) == 2
    recovered = {opt.header.key: get_header_value(opt.header) for opt in options}
    assert recovered == headers
    assert all(opt.header.raw_value for opt in options)


def test_generate_headers_mutation_empty():
    assert generate_headers_mutation({}) == []


def test_add_streamed_response_body_appends_chunks():
    existing = [ProcessingResponse(kind=ResponseKind.IMMEDIATE_RESPONSE, response=ImmediateResponse(status=400))]
    body = os.urandom(BODY_BYTE_LIMIT + 10)
    result = add_streamed_response_body(existing, body)
    assert len(result) == 3
    assert result[0] is existing[0]
    assert len(existing) == 1
    tail = result[1:]
    assert all(r.kind is ResponseKind.RESPONSE_BODY for r in tail)
    assert all(isinstance(r.response, BodyResponse) for r in tail)
    assert [r.response.response.streamed_response.end_of_stream for r in tail] == [False, True]
    assert b"".join(r.response.response.streamed_response.body for r in tail) == body


def test_add_streamed_response_body_empty():
    result = add_streamed_response_body([], b"")
    assert len(result) == 1
    assert result[0].response.response.streamed_response.end_of_stream is True