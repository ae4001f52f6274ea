from .response import (
    APIError,
    ErrorPayload,
    Meta,
    NotFoundError,
    OwnershipMismatchError,
    PinnedVersionError,
    StandardResponse,
    make_error_response,
    make_success_response,
)

__all__ = [
    "APIError",
    "NotFoundError",
    "OwnershipMismatchError",
    "PinnedVersionError",
    "Meta",
    "ErrorPayload",
    "StandardResponse",
    "make_success_response",
    "make_error_response",
]
