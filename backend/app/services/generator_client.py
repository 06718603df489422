"""Client for the external model that drafts timetables.

The model only ever sees staff by positional index. Whatever it returns is handed to
the reconciler untouched; this module only deals with transport and JSON decoding.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

import requests
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_fixed

from app.core.config import Settings
from app.core.exceptions import ConfigurationError, GenerationTransportError, MalformedResponseError
from app.schemas.timetable import GenerationRequest

logger = logging.getLogger(__name__)

TRANSIENT_STATUS_CODES = {429, 500, 502, 503, 504}


class ScheduleGenerator(Protocol):
    def generate(self, request: GenerationRequest) -> Any:
        """Return the decoded payload or raise GenerationTransportError/MalformedResponseError."""


def build_prompt(request: GenerationRequest) -> str:
    payload = request.to_generator_payload()
    staff_lines = []
    for staff in payload["staffDetails"]:
        classes = ", ".join(staff["assignedClasses"]) or "None"
        staff_lines.append(f"  - Staff ID (index): {staff['id']}, Teaches: {classes}")
    class_list = ", ".join(payload["classNames"])
    days = payload["daysPerWeek"]
    periods = payload["periodsPerDay"]
    breaks = payload["breakCount"]

    return "\n".join(
        [
            "You generate school timetables for every listed class at once.",
            "",
            "Staff (each identified only by its index):",
            *staff_lines,
            f"Classes: {class_list}",
            f"Teaching periods per day (excluding breaks): {periods}",
            f"Days per week: {days}",
            f"Breaks per day for each class: {breaks}",
            "",
            'Return one JSON object with the single key "allClassTimetables". Its value is an',
            'array with one object per class, each with "className" (one of the classes above)',
            'and "data": a 3D array [dayIndex][periodIndex][activitySlotIndex].',
            f"dayIndex runs 0..{days - 1} and periodIndex runs 0..{periods - 1}.",
            'Each period holds a single activity slot: {"staffId": "<staff index>"} or null.',
            "A null slot means a break or an unassigned period.",
            "",
            "Rules:",
            "1. A staff member teaches at most one class in any given day and period across the whole school.",
            "2. A staff member may only teach classes listed next to their index.",
            f"3. Each class gets exactly {breaks} null break slot(s) per day, spread through the day.",
            "4. Every listed class must have an entry.",
            "5. staffId values must be indices from the staff list above, as strings.",
            "6. Where several staff can teach a class, spread the load and avoid long runs of the same teacher.",
        ]
    )


def _is_transient(exc: BaseException) -> bool:
    if not isinstance(exc, GenerationTransportError):
        return False
    return exc.status is None or exc.status in TRANSIENT_STATUS_CODES


class GeminiScheduleGenerator:
    """Calls a ``models/{model}:generateContent`` endpoint and decodes its JSON answer."""

    def __init__(self, settings: Settings, session: requests.Session | None = None) -> None:
        self._settings = settings
        self._session = session or requests.Session()

    def generate(self, request: GenerationRequest) -> Any:
        if not self._settings.generator_configured:
            raise ConfigurationError("Timetable generator API key is not configured")
        retryer = Retrying(
            stop=stop_after_attempt(max(1, self._settings.generator_retry_attempts)),
            wait=wait_fixed(max(0.0, self._settings.generator_retry_backoff_seconds)),
            retry=retry_if_exception(_is_transient),
            reraise=True,
        )
        body = retryer(self._post, build_prompt(request))
        return self._decode(body)

    def _post(self, prompt: str) -> dict:
        settings = self._settings
        url = f"{settings.generator_api_url.rstrip('/')}/models/{settings.generator_model}:generateContent"
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "temperature": settings.generator_temperature,
            },
        }
        try:
            response = self._session.post(
                url,
                params={"key": settings.generator_api_key},
                json=payload,
                timeout=settings.generator_timeout_seconds,
            )
        except requests.Timeout as exc:
            logger.warning("Timetable generator timed out after %ss", settings.generator_timeout_seconds)
            raise GenerationTransportError(f"Generator request timed out: {exc}") from exc
        except requests.RequestException as exc:
            logger.warning("Timetable generator request failed: %s", exc)
            raise GenerationTransportError(f"Generator request failed: {exc}") from exc

        if response.status_code != 200:
            detail = response.text[:500]
            logger.warning("Timetable generator returned HTTP %s: %s", response.status_code, detail)
            raise GenerationTransportError(
                f"[{response.status_code} {response.reason}] {detail}",
                status=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponseError("Generator envelope is not JSON") from exc

    @staticmethod
    def _decode(body: Any) -> Any:
        try:
            parts = body["candidates"][0]["content"]["parts"]
            text = "".join(part.get("text", "") for part in parts)
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise MalformedResponseError("Generator response has no candidate content") from exc
        text = text.strip()
        if text.startswith("```"):
            text = text.strip("`")
            if text.lower().startswith("json"):
                text = text[4:]
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise MalformedResponseError(f"Generator output is not valid JSON: {exc.msg}") from exc
