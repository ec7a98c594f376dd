"""Record API resource models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class _Resource(BaseModel):
    model_config = ConfigDict(extra="allow")


class AccessToken(_Resource):
    token: str
    expiration_time: datetime


class PatientProfile(_Resource):
    id: str
    first_name: str | None = None
    last_name: str | None = None
    birth_date: str | None = None
    gender: str | None = None
    ehr_patient_id: str | None = None
    phone: str | None = None
    email: str | None = None
    demographic_string: str | None = None
    additional_context: str | None = None


class RecordSession(_Resource):
    id: str
    patient_profile_id: str | None = None
    session_name: str | None = None
    session_type: str | None = None
    language: str | None = None
    status: str | None = None


class SessionContext(_Resource):
    pass


class ConsultNote(_Resource):
    id: str | None = None
    session_id: str | None = None
    content: str | None = None
    format: str | None = None


class Document(_Resource):
    id: str
    session_id: str | None = None
    document_tab_type: str | None = None
    content: str | None = None
    content_type: str | None = None
