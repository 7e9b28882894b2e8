"""Translation of orchestrator results into HTTP responses."""

from pydantic import BaseModel
from starlette.responses import JSONResponse

from src.authgate.core.models import AuthFailure


def result_response(result: BaseModel) -> BaseModel | JSONResponse:
    """Return the success payload, or the error body with its status code."""
    if isinstance(result, AuthFailure):
        return JSONResponse(
            status_code=result.status_code, content=result.error.model_dump()
        )
    return result.response  # type: ignore[attr-defined]
