"""Record API client with cached short-lived bearer tokens."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import requests
from pydantic import BaseModel, ValidationError

from core.errors import ExternalServiceError
from records.models import (
    AccessToken,
    ConsultNote,
    Document,
    PatientProfile,
    RecordSession,
    SessionContext,
)

logger = logging.getLogger("sb.records")

DEFAULT_BASE_URL = "https://registrar.api.heidihealth.com/api/v2/ml-scribe/open-api"
TOKEN_REFRESH_MARGIN = timedelta(seconds=60)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_list(payload: Any, *keys: str) -> list[dict[str, Any]]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in keys:
            if isinstance(payload.get(key), list):
                return payload[key]
        return [payload]
    return []


class RecordApiClient:
    """Thin wrapper over the Record REST API.

    The API key is exchanged for a JWT at ``/jwt``; the token is reused until
    a minute before its expiration time.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        email: str = "user@example.com",
        third_party_internal_id: str = "12345",
        timeout: float = 10.0,
        session: requests.Session | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.api_key = api_key or os.getenv("HEIDI_API_KEY")
        self.base_url = (base_url or os.getenv("HEIDI_API_BASE_URL") or DEFAULT_BASE_URL).rstrip("/")
        self.email = email
        self.third_party_internal_id = str(third_party_internal_id)
        self.timeout = timeout
        self.session = session or requests.Session()
        self.clock = clock
        self._token: AccessToken | None = None

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> RecordApiClient:
        cfg = config.get("records", {})
        return cls(
            base_url=cfg.get("base_url"),
            email=cfg.get("email", "user@example.com"),
            third_party_internal_id=str(cfg.get("third_party_internal_id", "12345")),
            timeout=float(cfg.get("timeout_s", 10)),
        )

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def _token_valid(self) -> bool:
        if self._token is None:
            return False
        expires = self._token.expiration_time
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return expires > self.clock() + TOKEN_REFRESH_MARGIN

    def access_token(self) -> str:
        if not self.api_key:
            raise ExternalServiceError("Record API is not configured. Set HEIDI_API_KEY.")
        if self._token_valid():
            return self._token.token  # type: ignore[union-attr]

        logger.info("Fetching new Record API token")
        payload = self._send(
            "GET",
            "/jwt",
            params={"email": self.email, "third_party_internal_id": self.third_party_internal_id},
            headers={"Heidi-Api-Key": self.api_key},
        )
        self._token = self._parse(AccessToken, payload)
        logger.debug("Token cached until %s", self._token.expiration_time.isoformat())
        return self._token.token

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _send(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method, url, params=params, json=json, headers=headers, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise ExternalServiceError(f"Record API request failed: {method} {path}: {exc}") from exc

        if not 200 <= response.status_code < 300:
            body = (response.text or "")[:200]
            raise ExternalServiceError(f"Record API error: {response.status_code} {method} {path} - {body}")
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise ExternalServiceError(f"Record API returned invalid JSON for {path}") from exc

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        token = self.access_token()
        headers = {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}
        return self._send(method, path, headers=headers, **kwargs)

    @staticmethod
    def _parse(model: type[BaseModel], payload: Any) -> Any:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise ExternalServiceError(f"Unexpected Record API payload for {model.__name__}: {exc}") from exc

    # ------------------------------------------------------------------
    # Patient profiles
    # ------------------------------------------------------------------

    def create_patient_profile(self, profile: dict[str, Any]) -> PatientProfile:
        return self._parse(PatientProfile, self._request("POST", "/patient-profiles", json=profile))

    def get_patient_profile(self, profile_id: str) -> PatientProfile:
        return self._parse(PatientProfile, self._request("GET", f"/patient-profiles/{profile_id}"))

    def update_patient_profile(self, profile_id: str, profile: dict[str, Any]) -> PatientProfile:
        return self._parse(
            PatientProfile, self._request("PUT", f"/patient-profiles/{profile_id}", json=profile)
        )

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_session(self, session: dict[str, Any]) -> RecordSession:
        return self._parse(RecordSession, self._request("POST", "/sessions", json=session))

    def get_session(self, session_id: str) -> RecordSession:
        return self._parse(RecordSession, self._request("GET", f"/sessions/{session_id}"))

    def get_session_context(self, session_id: str) -> SessionContext:
        return self._parse(SessionContext, self._request("GET", f"/sessions/{session_id}/context"))

    def get_session_consult_notes(self, session_id: str) -> list[ConsultNote]:
        payload = self._request("GET", f"/sessions/{session_id}/consult-notes")
        return [self._parse(ConsultNote, item) for item in _as_list(payload, "consult_notes", "notes", "data")]

    def get_session_documents(self, session_id: str) -> list[Document]:
        payload = self._request("GET", f"/sessions/{session_id}/documents")
        return [self._parse(Document, item) for item in _as_list(payload, "documents", "data")]

    def create_document(self, session_id: str, document: dict[str, Any]) -> Document:
        return self._parse(
            Document, self._request("POST", f"/sessions/{session_id}/documents", json=document)
        )
