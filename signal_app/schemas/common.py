"""
Error envelope shared by every route, documented in the OpenAPI schema.
"""
from typing import Any, Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Body of every 4xx/5xx response."""
    code: str
    message: str
    details: Optional[dict[str, Any]] = None


def error_responses(**descriptions: str) -> dict[int, dict[str, Any]]:
    """`error_responses(e404="Day does not exist.")` -> FastAPI `responses=` mapping."""
    return {
        int(key.lstrip("e")): {"model": ErrorResponse, "description": text}
        for key, text in descriptions.items()
    }
