"""Errors raised while handling requests, and their mapping to proxy replies."""

from __future__ import annotations

from http import HTTPStatus

from payloadproc.envoy import ImmediateResponse, ProcessingResponse, ResponseKind

UNKNOWN = "Unknown"
BAD_REQUEST = "BadRequest"
UNAUTHORIZED = "Unauthorized"
FORBIDDEN = "Forbidden"
NOT_FOUND = "NotFound"
INTERNAL = "Internal"
SERVICE_UNAVAILABLE = "ServiceUnavailable"
MODEL_SERVER_ERROR = "ModelServerError"
RESOURCE_EXHAUSTED = "ResourceExhausted"

_HTTP_STATUS_BY_CODE = {
    BAD_REQUEST: HTTPStatus.BAD_REQUEST,
    UNAUTHORIZED: HTTPStatus.UNAUTHORIZED,
    FORBIDDEN: HTTPStatus.FORBIDDEN,
    NOT_FOUND: HTTPStatus.NOT_FOUND,
    RESOURCE_EXHAUSTED: HTTPStatus.TOO_MANY_REQUESTS,
    INTERNAL: HTTPStatus.INTERNAL_SERVER_ERROR,
    SERVICE_UNAVAILABLE: HTTPStatus.SERVICE_UNAVAILABLE,
}


class InferenceError(Exception):
    """An error carrying a canonical code and a message."""

    def __init__(self, code: str, msg: str = "") -> None:
        super().__init__(code, msg)
        self.code = code
        self.msg = msg

    def __str__(self) -> str:
        return f"inference error: {self.code} - {self.msg}"


class GrpcStatusError(Exception):
    """An error to be returned to the proxy as a gRPC status."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(code, message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return f"rpc error: code = {self.code} desc = {self.message}"


def canonical_code(err: BaseException | None) -> str:
    """Return the code of an InferenceError, or Unknown for anything else."""
    if isinstance(err, InferenceError):
        return err.code
    return UNKNOWN


def build_err_response(err: BaseException) -> ProcessingResponse:
    """Map an error to an immediate HTTP reply.

    Errors whose code has no HTTP mapping raise GrpcStatusError instead.
    """
    status = _HTTP_STATUS_BY_CODE.get(canonical_code(err))
    if status is None:
        grpc_code = err.code if isinstance(err, GrpcStatusError) else UNKNOWN
        raise GrpcStatusError(grpc_code, f"failed to handle request: {err}") from err

    text = str(err)
    return ProcessingResponse(
        kind=ResponseKind.IMMEDIATE_RESPONSE,
        response=ImmediateResponse(status=int(status), body=text.encode("utf-8") if text else b""),
    )