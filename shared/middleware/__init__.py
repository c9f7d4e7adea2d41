from shared.middleware.error_handler import error_envelope_middleware
from shared.middleware.request_id import (
    RequestIdLogFilter,
    request_id_ctx,
    request_id_middleware,
)

__all__ = [
    "error_envelope_middleware",
    "request_id_middleware",
    "request_id_ctx",
    "RequestIdLogFilter",
]
