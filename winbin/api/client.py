from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

import requests

from ..ai.imaging import Frame, encode_data_uri


class ScanApiError(RuntimeError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass
class ScanApiHttpClient:
    """Drive one remote scan session over the HTTP API."""

    base_url: str
    timeout: float = 45.0
    owner: str | None = None
    session: requests.Session = field(default_factory=requests.Session)
    session_id: str | None = None

    def start(self) -> Dict[str, Any]:
        payload = {"owner": self.owner} if self.owner else {}
        data = self._request("POST", "/v1/sessions", json=payload)
        self.session_id = data["session_id"]
        return data

    def identify(self, frame: Frame) -> Dict[str, Any]:
        return self._request(
            "POST", self._session_path("identify"), json={"image_base64": encode_data_uri(frame)}
        )

    def confirm(self, frame: Frame) -> Dict[str, Any]:
        return self._request(
            "POST", self._session_path("confirm"), json={"image_base64": encode_data_uri(frame)}
        )

    def reset(self) -> Dict[str, Any]:
        return self._request("POST", self._session_path("reset"))

    def status(self) -> Dict[str, Any]:
        return self._request("GET", self._session_path())

    def close(self) -> None:
        if self.session_id is None:
            return
        try:
            self._request("DELETE", self._session_path())
        finally:
            self.session_id = None

    def _session_path(self, action: str | None = None) -> str:
        if self.session_id is None:
            self.start()
        path = f"/v1/sessions/{self.session_id}"
        return f"{path}/{action}" if action else path

    def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        url = f"{self.base_url.rstrip('/')}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.Timeout as exc:  # pragma: no cover - network conditions
            raise ScanApiError("Timed out waiting for scan API") from exc
        except requests.RequestException as exc:  # pragma: no cover - network conditions
            raise ScanApiError(f"Failed to call scan API: {exc}") from exc
        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = None
            detail = body.get("detail", response.text) if isinstance(body, dict) else response.text
            raise ScanApiError(str(detail), status_code=response.status_code)
        if response.status_code == 204 or not response.content:
            return {}
        return response.json()


__all__ = ["ScanApiError", "ScanApiHttpClient"]
