"""
Request Timing Middleware
Logs the time taken for each HTTP request.
"""

import logging
import time

from django.utils.deprecation import MiddlewareMixin

logger = logging.getLogger(__name__)


class RequestTimingMiddleware(MiddlewareMixin):
    """
    Middleware that logs request timing information.

    Output format:
    METHOD /path/ - XXX.XXms - STATUS
    """

    def process_request(self, request):
        """Store the start time when request begins."""
        request._start_time = time.monotonic()

    def process_response(self, request, response):
        """Calculate and log the request duration."""
        if not hasattr(request, "_start_time"):
            return response

        path = request.path
        # Skip static files and the Django admin for cleaner output
        if path.startswith("/static/") or path.startswith("/admin/"):
            return response

        duration_ms = (time.monotonic() - request._start_time) * 1000
        status = response.status_code
        message = f"{request.method} {path} - {duration_ms:.2f}ms - {status}"
        if status >= 500:
            logger.error(message)
        elif status >= 400:
            logger.warning(message)
        else:
            logger.info(message)
        return response
