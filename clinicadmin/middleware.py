import logging
import time
import uuid

logger = logging.getLogger(__name__)


class RequestLogMiddleware:
    """Tag each request with an id and log how long it took."""
    HEADER = 'X-Request-ID'

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request_id = request.headers.get(self.HEADER) or uuid.uuid4().hex[:12]
        request.request_id = request_id
        started = time.monotonic()
        response = self.get_response(request)
        elapsed_ms = (time.monotonic() - started) * 1000
        log = logger.warning if response.status_code >= 500 else logger.info
        log("[%s] %s %s -> %s in %.1fms", request_id, request.method, request.path,
            response.status_code, elapsed_ms)
        response[self.HEADER] = request_id
        return response
