"""
================================================================================
LINKWORK - CUSTOM MIDDLEWARE
================================================================================

@file        middleware.py
@description Translates exceptions raised by API views into JSON responses

ApiErrorMiddleware
================================================================================
- ApiError subclasses become {"message": ..., "error": <kind>} with the
  status code carried by the exception class.
- Anything else is logged with its traceback and answered as a generic 500
  so internals never leak to the client.

Exceptions raised while a streaming response is being consumed happen after
this middleware has returned; they terminate the connection instead.
================================================================================
"""

import logging

from django.http import JsonResponse

from .errors import ApiError, Unexpected


logger = logging.getLogger(__name__)


class ApiErrorMiddleware:
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        if isinstance(exception, ApiError):
            if exception.status >= 500:
                logger.error(f"{request.method} {request.path}: {exception.message}")
            return JsonResponse(exception.as_dict(), status=exception.status)

        logger.error(
            f"Unhandled error on {request.method} {request.path}: {exception}",
            exc_info=True,
        )
        error = Unexpected()
        return JsonResponse(error.as_dict(), status=error.status)
