"""
HTTP client for the InternMatch API.

Wraps an httpx.Client (a real one pointed at the server, or FastAPI's
TestClient) and turns every non-2xx response into an APIError carrying
the server's {"error": ...} message.
"""

import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class APIError(Exception):
    def __init__(self, status_code: int, message: str, body: Optional[dict] = None):
        self.status_code = status_code
        self.message = message
        self.body = body or {}
        super().__init__(f"{status_code}: {message}")


class InternMatchAPI:

    def __init__(self, http: httpx.Client, token: Optional[str] = None, prefix: str = "/api"):
        self.http = http
        self.token = token
        self.prefix = prefix

    def _request(self, method: str, path: str, **kwargs) -> Any:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            response = self.http.request(method, f"{self.prefix}{path}", headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise APIError(0, "Network error, please try again")

        if response.is_success:
            return response.json() if response.content else None
        try:
            body = response.json()
        except ValueError:
            body = {}
        message = body.get("error") if isinstance(body, dict) else None
        raise APIError(response.status_code, message or response.reason_phrase, body)

    # ==================== INTERNSHIPS ====================

    def list_internships(self, **params) -> Dict[str, Any]:
        return self._request("GET", "/internships", params=params)

    def get_internship(self, internship_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/internships/{internship_id}")

    # ==================== SAVED ====================

    def list_saved(self, page: int = 1, limit: int = 100) -> Dict[str, Any]:
        return self._request("GET", "/saved", params={"page": page, "limit": limit})

    def save_internship(self, internship_id: str) -> Dict[str, Any]:
        return self._request("POST", "/saved", json={"internship_id": internship_id})

    def unsave_internship(self, internship_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/saved/{internship_id}")

    # ==================== APPLICATIONS ====================

    def student_applications(self, page: int = 1, limit: int = 100) -> Dict[str, Any]:
        return self._request("GET", "/applications/student", params={"page": page, "limit": limit})

    def company_applications(self, page: int = 1, limit: int = 100) -> Dict[str, Any]:
        return self._request("GET", "/applications/company", params={"page": page, "limit": limit})

    def get_application(self, application_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/applications/{application_id}")

    def submit_application(self, internship_id: str, resume_id: str, cover_letter: str) -> Dict[str, Any]:
        return self._request("POST", "/applications", json={
            "internship_id": internship_id,
            "resume_id": resume_id,
            "cover_letter": cover_letter,
        })

    def withdraw_application(self, application_id: str) -> Dict[str, Any]:
        return self._request("PATCH", f"/applications/{application_id}/withdraw")

    def update_application_status(self, application_id: str, status: str,
                                  feedback: Optional[str] = None) -> Dict[str, Any]:
        body = {"status": status}
        if feedback is not None:
            body["feedback"] = feedback
        return self._request("PATCH", f"/applications/{application_id}/status", json=body)

    # ==================== PROFILES ====================

    def student_profile(self) -> Dict[str, Any]:
        return self._request("GET", "/students/profile")

    def company_profile(self) -> Dict[str, Any]:
        return self._request("GET", "/companies/profile")
