# core/responses.py

from rest_framework import status
from rest_framework.response import Response


def error_response(result) -> Response:
    """Response for a failed CommandResult: {"code", "detail"} with the error's HTTP status."""
    return Response(
        {"code": result.error_code, "detail": result.error},
        status=result.http_status or status.HTTP_400_BAD_REQUEST,
    )
