"""
HTTP client for the JobTrack API.

Usage:
    from jobtrack.client.api_client import JobTrackerClient

    client = JobTrackerClient()
    client.login("me@example.com", "secret")
    jobs = client.list_jobs()

Every failure is raised as one of the ``jobtrack.core.errors`` classes:
400 -> ValidationError, 401 -> AuthError, 404 -> NotFoundError,
409 -> ConflictError, anything else (and network failures) -> TransportError.
"""

import logging
from typing import Optional, Dict, Any, List

import requests

from jobtrack.core.config import get_settings
from jobtrack.core.errors import (
    AuthError, ConflictError, NotFoundError, TransportError, ValidationError
)
from jobtrack.core.schemas import JobRecord, UserOut, to_wire

logger = logging.getLogger(__name__)


class JobTrackerClient:
    """
    Thin wrapper over the REST surface.

    Holds the session token after register/login and sends it as a bearer
    token on every job call.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        session=None
    ):
        """
        Initialize the client.

        Args:
            base_url: API root. Defaults to CLIENT_BASE_URL.
            token: Existing session token, if any
            timeout: Request timeout in seconds. Defaults to CLIENT_TIMEOUT.
            session: requests-compatible session (tests pass a TestClient)
        """
        client_settings = get_settings().client
        self.base_url = (client_settings.base_url if base_url is None else base_url).rstrip("/")
        self.timeout = timeout or client_settings.timeout
        self.token = token
        self.session = session or requests.Session()
        self.user: Optional[UserOut] = None

    # =========================================================================
    # Plumbing
    # =========================================================================

    def _headers(self) -> Dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def _request(self, method: str, path: str, json: Optional[Dict] = None):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method, url, json=json, headers=self._headers(), timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"{method} {path} failed: {e}")
            raise TransportError(f"Could not reach JobTrack API: {e}")

        if response.status_code < 400:
            return response

        detail = self._detail(response)
        if response.status_code == 400:
            body = self._json(response) or {}
            raise ValidationError(body.get("errors") or {}, message=detail)
        if response.status_code == 401:
            raise AuthError(detail)
        if response.status_code == 404:
            raise NotFoundError(detail)
        if response.status_code == 409:
            raise ConflictError(detail)

        logger.error(f"{method} {path} returned {response.status_code}: {detail}")
        raise TransportError(f"Server error {response.status_code}: {detail}")

    @staticmethod
    def _json(response) -> Optional[Any]:
        try:
            return response.json()
        except ValueError:
            return None

    def _detail(self, response) -> str:
        body = self._json(response)
        if isinstance(body, dict) and body.get("detail"):
            return str(body["detail"])
        return response.text or f"HTTP {response.status_code}"

    # =========================================================================
    # Session
    # =========================================================================

    def _store_session(self, body: Dict) -> UserOut:
        self.token = body["token"]
        self.user = UserOut(**body["user"])
        return self.user

    def register(self, email: str, password: str, name: str = "") -> UserOut:
        response = self._request(
            "POST", "/users/register",
            json={"email": email, "password": password, "name": name}
        )
        return self._store_session(response.json())

    def login(self, email: str, password: str) -> UserOut:
        response = self._request(
            "POST", "/users/login", json={"email": email, "password": password}
        )
        return self._store_session(response.json())

    def logout(self):
        """Forget the session token."""
        self.token = None
        self.user = None

    # =========================================================================
    # Jobs
    # =========================================================================

    def list_jobs(self) -> List[JobRecord]:
        response = self._request("GET", "/jobs")
        return [JobRecord(**item) for item in response.json()]

    def create_job(self, fields: Dict[str, Any]) -> JobRecord:
        payload = {to_wire(k): v for k, v in fields.items()}
        response = self._request("POST", "/jobs", json=payload)
        return JobRecord(**response.json())

    def update_job(self, job_id: str, changes: Dict[str, Any]) -> JobRecord:
        payload = {to_wire(k): v for k, v in changes.items()}
        response = self._request("PATCH", f"/jobs/{job_id}", json=payload)
        return JobRecord(**response.json())

    def delete_job(self, job_id: str):
        self._request("DELETE", f"/jobs/{job_id}")
