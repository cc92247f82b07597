"""
HTTP Client Mock for Component Testing

Stands in for the httpx.AsyncClient used by ResendEmailClient.
"""
from typing import Any, Dict, List, Optional, Union


class MockHttpResponse:
    """Mock HTTP response"""

    def __init__(self, status_code: int = 200, json_data: Optional[Dict[str, Any]] = None, text: str = ""):
        self.status_code = status_code
        self._json_data = json_data or {}
        self.text = text or str(json_data)

    def json(self) -> Dict[str, Any]:
        return self._json_data


class MockHttpClient:
    """
    Mock for httpx.AsyncClient

    Responses are consumed in order from a queue; an Exception in the queue
    is raised instead of returned. When the queue is empty the default
    response is used.
    """

    def __init__(self):
        self.requests: List[Dict[str, Any]] = []
        self._queue: List[Union[MockHttpResponse, Exception]] = []
        self._default_response = MockHttpResponse(200, {"id": "email_mock_1"})
        self.closed = False

    async def post(self, url: str, **kwargs) -> MockHttpResponse:
        """Mock POST request"""
        self.requests.append({"method": "POST", "url": url, **kwargs})

        if self._queue:
            outcome = self._queue.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        return self._default_response

    async def aclose(self):
        self.closed = True

    # Test helper methods

    def queue_response(self, status_code: int = 200, json_data: Optional[Dict[str, Any]] = None, text: str = ""):
        self._queue.append(MockHttpResponse(status_code, json_data, text))

    def queue_error(self, error: Exception):
        self._queue.append(error)

    def get_last_request(self) -> Optional[Dict[str, Any]]:
        """Get the last recorded request"""
        return self.requests[-1] if self.requests else None
