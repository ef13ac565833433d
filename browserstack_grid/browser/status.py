"""
Session status reporting through the BrowserStack Automate REST API.

https://www.browserstack.com/docs/automate/api-reference/selenium/session
"""

from dataclasses import dataclass
from typing import Optional

import httpx
import structlog

from browserstack_grid.config import DEFAULT_API_URL
from browserstack_grid.errors import StatusReportError

logger = structlog.get_logger(__name__)

MAX_REASON_LENGTH = 255


@dataclass(frozen=True)
class TestOutcome:
    """Pass/fail result of one test, as reported to BrowserStack."""
    __test__ = False  # not a pytest test class

    passed: bool
    reason: Optional[str] = None

    @property
    def status(self) -> str:
        return "passed" if self.passed else "failed"

    def payload(self) -> dict[str, str]:
        payload = {"status": self.status}
        if self.reason:
            payload["reason"] = self.reason[:MAX_REASON_LENGTH]
        return payload


class SessionStatusReporter:
    """
    Marks remote sessions as passed or failed.

    One PUT per call, authenticated with the account credentials. Failures are
    raised, never retried.
    """

    def __init__(
        self,
        username: str,
        access_key: str,
        api_url: str = DEFAULT_API_URL,
        client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ):
        self.api_url = api_url.rstrip("/")
        self._auth = (username, access_key)
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout))

    def __enter__(self) -> "SessionStatusReporter":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Close the HTTP client if this reporter created it."""
        if self._owns_client:
            self._client.close()

    def session_url(self, session_id: str) -> str:
        return f"{self.api_url}/automate/sessions/{session_id}.json"

    def report(self, session_id: str, outcome: TestOutcome) -> dict:
        """
        Update the status of a session.

        Args:
            session_id: WebDriver session id
            outcome: Test outcome to report

        Returns:
            Parsed JSON response

        Raises:
            StatusReportError: On network failure or a non-2xx response
        """
        try:
            response = self._client.put(
                self.session_url(session_id),
                json=outcome.payload(),
                auth=self._auth,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise StatusReportError(
                f"Failed to update session {session_id}: {e.response.status_code} {e.response.text}"
            ) from e
        except httpx.HTTPError as e:
            raise StatusReportError(f"Failed to update session {session_id}: {e}") from e

        logger.info("Reported session status", session_id=session_id, status=outcome.status)
        try:
            return response.json()
        except ValueError:
            return {}
