"""Error taxonomy for the pipeline board.

Each error carries a stable machine code that the API renders in the
standard envelope: {"status": "error", "error": <message>, "code": <code>}.
"""

from fastapi import Request
from fastapi.responses import JSONResponse


class PipelineError(Exception):
    """Base class for every board error."""

    code = "PIPELINE_ERROR"
    http_status = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"status": "error", "error": self.message, "code": self.code}


class MalformedDragPayload(PipelineError):
    """Drop payload could not be parsed or is missing record id / source stage."""

    code = "MALFORMED_PAYLOAD"


class PersistenceFailure(PipelineError):
    """A status update or settings save did not reach the store."""

    code = "PERSISTENCE_FAILED"
    http_status = 503

    def __init__(self, message: str, retryable: bool = True):
        super().__init__(message)
        self.retryable = retryable


class InvalidOperation(PipelineError):
    """Rejected synchronously: no state change, no persistence call."""

    code = "INVALID_OPERATION"
    http_status = 409


class UnresolvedStatus(PipelineError):
    """A status resolved to no known stage. Never expected in practice."""

    code = "UNRESOLVED_STATUS"
    http_status = 500


class RecordNotFoundError(PipelineError):
    code = "RECORD_NOT_FOUND"
    http_status = 404


class StageNotFoundError(PipelineError):
    code = "STAGE_NOT_FOUND"
    http_status = 404


async def pipeline_error_handler(_: Request, exc: PipelineError) -> JSONResponse:
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())
