"""Async client for the clinic REST backend (appointments, doctors, patients).

Every call opens a short-lived ``httpx.AsyncClient``; failures are re-raised as
FetchError for reads and MutationError for writes, carrying the backend's
message when it sends one.
"""
from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError as ModelError

from . import errors
from .errors import FetchError, MutationError
from .models import Appointment, AppointmentDraft, AppointmentPatch, Doctor, Patient

logger = logging.getLogger(__name__)

APPOINTMENTS = "/api/appointments"
DOCTORS = "/api/doctors"
PATIENTS = "/api/patients"


def _backend_message(resp: httpx.Response) -> str | None:
    try:
        body = resp.json()
    except ValueError:
        return resp.text.strip() or None
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            if body.get(key):
                return str(body[key])
        return None
    if isinstance(body, str):
        return body or None
    return None


class ClinicApiClient:
    def __init__(self, base_url: str, timeout: float = 15, token: str | None = None, http2: bool = True):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.token = token
        self.http2 = http2

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _send(self, method: str, path: str, *, error_cls, fallback: str, **kwargs) -> httpx.Response:
        try:
            async with httpx.AsyncClient(base_url=self.base_url, http2=self.http2, timeout=self.timeout) as client:
                resp = await client.request(method, path, headers=self._headers(), **kwargs)
                resp.raise_for_status()
                return resp
        except httpx.HTTPStatusError as exc:
            message = _backend_message(exc.response) or fallback
            logger.error("API error: %s %s -> %s %s", method, path, exc.response.status_code, message)
            raise error_cls(message, exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            logger.error("API error: %s %s -> %s", method, path, exc)
            raise error_cls(fallback) from exc

    async def _fetch(self, path: str, fallback: str = errors.FALLBACK_LOAD, **kwargs):
        resp = await self._send("GET", path, error_cls=FetchError, fallback=fallback, **kwargs)
        return resp.json() if resp.content else None

    @staticmethod
    def _parse(model, payload, error_cls, fallback):
        try:
            if isinstance(payload, list):
                return [model.model_validate(item) for item in payload]
            return model.model_validate(payload)
        except ModelError as exc:
            logger.error("Unexpected payload for %s: %s", model.__name__, exc)
            raise error_cls(fallback) from exc

    # Reads ----------------------------------------------------------------

    async def list_appointments(self) -> list[Appointment]:
        payload = await self._fetch(APPOINTMENTS)
        return self._parse(Appointment, payload or [], FetchError, errors.FALLBACK_LOAD)

    async def get_appointment(self, appt_id: str) -> Appointment:
        payload = await self._fetch(f"{APPOINTMENTS}/{appt_id}", errors.FALLBACK_LOAD_ONE)
        return self._parse(Appointment, payload, FetchError, errors.FALLBACK_LOAD_ONE)

    async def list_by_patient(self, patient_id: str) -> list[Appointment]:
        payload = await self._fetch(f"{APPOINTMENTS}/patient/{patient_id}")
        return self._parse(Appointment, payload or [], FetchError, errors.FALLBACK_LOAD)

    async def list_by_doctor(self, doctor_id: str, date_from: str | None = None, date_to: str | None = None) -> list[Appointment]:
        """Appointments of one doctor, optionally limited to ``from``/``to``."""
        params = {}
        if date_from or date_to:
            params = {"from": date_from or "", "to": date_to or ""}
        payload = await self._fetch(f"{APPOINTMENTS}/doctor/{doctor_id}", params=params)
        return self._parse(Appointment, payload or [], FetchError, errors.FALLBACK_LOAD)

    async def list_doctors(self) -> list[Doctor]:
        payload = await self._fetch(DOCTORS, errors.FALLBACK_LOAD_OPTIONS)
        return self._parse(Doctor, payload or [], FetchError, errors.FALLBACK_LOAD_OPTIONS)

    async def list_patients(self) -> list[Patient]:
        payload = await self._fetch(PATIENTS, errors.FALLBACK_LOAD_OPTIONS)
        return self._parse(Patient, payload or [], FetchError, errors.FALLBACK_LOAD_OPTIONS)

    # Writes ---------------------------------------------------------------

    async def create_appointment(self, draft: AppointmentDraft) -> Appointment:
        body = draft.model_dump(by_alias=True, exclude_none=True, mode="json")
        resp = await self._send("POST", APPOINTMENTS, error_cls=MutationError, fallback=errors.FALLBACK_CREATE, json=body)
        return self._parse(Appointment, resp.json(), MutationError, errors.FALLBACK_CREATE)

    async def update_appointment(self, appt_id: str, patch: AppointmentPatch) -> Appointment:
        resp = await self._send(
            "PUT", f"{APPOINTMENTS}/{appt_id}",
            error_cls=MutationError, fallback=errors.FALLBACK_UPDATE, json=patch.to_payload(),
        )
        return self._parse(Appointment, resp.json(), MutationError, errors.FALLBACK_UPDATE)

    async def delete_appointment(self, appt_id: str) -> None:
        await self._send("DELETE", f"{APPOINTMENTS}/{appt_id}", error_cls=MutationError, fallback=errors.FALLBACK_DELETE)

    async def confirm_appointment(self, appt_id: str) -> Appointment:
        resp = await self._send("PUT", f"{APPOINTMENTS}/{appt_id}/confirm", error_cls=MutationError, fallback=errors.FALLBACK_CONFIRM)
        if not resp.content:
            # some backends answer 204; read the record back
            return await self.get_appointment(appt_id)
        return self._parse(Appointment, resp.json(), MutationError, errors.FALLBACK_CONFIRM)

    async def cancel_appointment(self, appt_id: str, reason: str | None = None) -> None:
        params = {"reason": reason} if reason else {}
        await self._send(
            "DELETE", f"{APPOINTMENTS}/{appt_id}/cancel",
            error_cls=MutationError, fallback=errors.FALLBACK_CANCEL, params=params,
        )
