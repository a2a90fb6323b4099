"""
Async HTTP client for the school operations API.
Unwraps the {data, message} envelope, raises ApiError with a tagged kind on failure,
caches reads and invalidates the affected keys after every write.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

import httpx

from schoolops.core.enums import ErrorKind

from .cache import QueryCache
from .errors import ApiError, error_from_response
from .validation import (
    PromotionChoice,
    validate_class_exam,
    validate_marks,
    validate_session_pair,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_MARKS = 100


def _clean(params: Mapping[str, Any]) -> Dict[str, str]:
    return {k: str(v) for k, v in params.items() if v is not None}


class SchoolApiClient:
    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = DEFAULT_TIMEOUT,
        cache: Optional[QueryCache] = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._http = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )
        self.cache = cache if cache is not None else QueryCache()
        self.last_message: Optional[str] = None

    async def __aenter__(self) -> "SchoolApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # --- transport ---
    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        try:
            response = await self._http.request(method, path, params=_clean(params or {}), json=json)
        except httpx.TimeoutException:
            raise ApiError(ErrorKind.UNKNOWN, f"Request to {path} timed out")
        except httpx.HTTPError as e:
            raise ApiError(ErrorKind.UNKNOWN, f"Request to {path} failed: {e}")

        if response.is_error:
            err = error_from_response(response)
            logger.debug("%s %s -> %s %s", method, path, response.status_code, err.kind.value)
            raise err
        if not response.content:
            self.last_message = None
            return None
        body = response.json()
        if isinstance(body, dict) and "data" in body:
            self.last_message = body.get("message")
            return body["data"]
        self.last_message = None
        return body

    async def _cached_get(self, key: str, path: str, params: Optional[Mapping[str, Any]] = None, fresh: bool = False) -> Any:
        if fresh:
            self.cache.invalidate(key)

        async def load() -> Any:
            return await self._request("GET", path, params=params)

        return await self.cache.get_or_load(key, load)

    # --- sessions ---
    async def list_sessions(self) -> List[Dict[str, Any]]:
        return await self._cached_get("sessions/all", "/sessions")

    async def get_active_session(self) -> Dict[str, Any]:
        return await self._cached_get("sessions/active", "/sessions/active")

    async def create_session(self, name: str, start_date: date, end_date: date, active: bool = False) -> Dict[str, Any]:
        data = await self._request(
            "POST",
            "/sessions",
            json={"name": name, "start_date": start_date.isoformat(), "end_date": end_date.isoformat(), "active": active},
        )
        self.cache.invalidate("sessions")
        return data

    async def activate_session(self, session_id: Any) -> Dict[str, Any]:
        data = await self._request("PUT", f"/sessions/{session_id}/activate")
        self.cache.invalidate("sessions")
        return data

    # --- classes ---
    async def list_classes(self, session_id: Any = None) -> List[Dict[str, Any]]:
        return await self._cached_get(f"classes/session/{session_id or 'all'}", "/classes", {"sessionId": session_id})

    async def create_class(self, name: str, session_id: Any, class_teacher_id: Any = None) -> Dict[str, Any]:
        data = await self._request(
            "POST",
            "/classes",
            json={
                "name": name,
                "session_id": str(session_id),
                "class_teacher_id": str(class_teacher_id) if class_teacher_id else None,
            },
        )
        self.cache.invalidate("classes")
        return data

    # --- students ---
    async def list_students(self, class_id: Any = None) -> List[Dict[str, Any]]:
        return await self._cached_get(f"students/class/{class_id or 'all'}", "/students", {"classId": class_id})

    async def get_student(self, pan_number: str, fresh: bool = False) -> Dict[str, Any]:
        return await self._cached_get(f"students/pan/{pan_number}", f"/students/{pan_number}", fresh=fresh)

    async def create_student(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        data = await self._request("POST", "/students", json=dict(payload))
        self.cache.invalidate("students", f"fees/catalog/{data['pan_number']}")
        return data

    async def update_student(self, pan_number: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """Update a student. A class change regenerates fees server-side before this returns."""
        data = await self._request("PUT", f"/students/{pan_number}", json=dict(payload))
        self.cache.invalidate("students", f"fees/catalog/{pan_number}", "promotions")
        return data

    # --- fees ---
    async def get_fee_catalog(self, pan_number: str, fresh: bool = False) -> Dict[str, Any]:
        return await self._cached_get(f"fees/catalog/{pan_number}", f"/fees/catalog/{pan_number}", fresh=fresh)

    async def generate_fees(self, pan_number: str) -> Dict[str, Any]:
        try:
            return await self._request("POST", f"/fees/generate/{pan_number}")
        finally:
            self.cache.invalidate(f"fees/catalog/{pan_number}", f"students/pan/{pan_number}")

    async def pay_fee(
        self,
        student_pan: str,
        month: str,
        amount: Any,
        *,
        year: Optional[int] = None,
        receipt_number: Optional[str] = None,
        session_id: Any = None,
        class_id: Any = None,
    ) -> Dict[str, Any]:
        payload = {
            "student_pan": student_pan,
            "month": month,
            "year": year,
            "amount": str(amount),
            "receipt_number": receipt_number or None,
            "session_id": str(session_id) if session_id else None,
            "class_id": str(class_id) if class_id else None,
        }
        data = await self._request("POST", "/fees/pay", json=payload)
        self.cache.invalidate(f"fees/catalog/{student_pan}", f"students/pan/{student_pan}", "students/class")
        return data

    async def create_fee_component(self, class_id: Any, component_name: str, amount: Any) -> Dict[str, Any]:
        data = await self._request(
            "POST",
            "/fees/structure",
            json={"class_id": str(class_id), "component_name": component_name, "amount": str(amount)},
        )
        self.cache.invalidate(f"fees/structure/{class_id}")
        return data

    # --- promotions ---
    async def assign_promotions(
        self,
        class_id: Any,
        session_id: Any,
        choices: List[PromotionChoice],
    ) -> List[Dict[str, Any]]:
        data = await self._request(
            "POST",
            "/promotions/assign",
            json={
                "class_id": str(class_id),
                "session_id": str(session_id),
                "assignments": [c.to_payload() for c in choices],
            },
        )
        self.cache.invalidate("promotions")
        return data

    async def list_session_promotions(self, session_id: Any, fresh: bool = False) -> List[Dict[str, Any]]:
        return await self._cached_get(f"promotions/session/{session_id}", f"/promotions/session/{session_id}", fresh=fresh)

    async def list_class_promotions(self, class_id: Any, session_id: Any = None) -> List[Dict[str, Any]]:
        return await self._cached_get(
            f"promotions/class/{class_id}/{session_id or 'current'}",
            f"/promotions/class/{class_id}",
            {"sessionId": session_id},
        )

    async def execute_promotions(self, from_session_id: Any, to_session_id: Any) -> Dict[str, Any]:
        validate_session_pair(from_session_id, to_session_id)
        data = await self._request(
            "POST",
            "/promotions/execute",
            params={"fromSessionId": from_session_id, "toSessionId": to_session_id},
        )
        # Execution moves students, graduates them and regenerates fees.
        self.cache.invalidate("promotions", "students", "fees", "classes")
        return data

    # --- exams ---
    async def list_exam_types(self) -> List[Dict[str, Any]]:
        return await self._cached_get("exams/types", "/exam-types")

    async def create_exam_type(self, name: str, description: Optional[str] = None) -> Dict[str, Any]:
        data = await self._request("POST", "/exam-types", json={"name": name, "description": description})
        self.cache.invalidate("exams/types")
        return data

    async def assign_class_exams(
        self,
        exam_type_id: Any,
        class_ids: List[Any],
        max_marks: int,
        passing_marks: int,
        exam_date: Optional[date] = None,
    ) -> List[Dict[str, Any]]:
        validate_class_exam(max_marks, passing_marks)
        data = await self._request(
            "PUT",
            f"/class-exams/exam-type/{exam_type_id}",
            json={
                "class_ids": [str(c) for c in class_ids],
                "max_marks": max_marks,
                "passing_marks": passing_marks,
                "exam_date": exam_date.isoformat() if exam_date else None,
            },
        )
        self.cache.invalidate("exams/class-exams", "exams/marks")
        return data

    async def list_class_exams(self, class_id: Any) -> List[Dict[str, Any]]:
        return await self._cached_get(f"exams/class-exams/class/{class_id}", f"/class-exams/class/{class_id}")

    async def upload_marks(
        self,
        class_exam_id: Any,
        subject: str,
        marks: Mapping[str, Any],
        max_marks: int = DEFAULT_MAX_MARKS,
    ) -> List[Dict[str, Any]]:
        """Upload marks keyed by student PAN. Every value is range-checked against max_marks first."""
        entries = [
            {"student_pan": pan, "marks": str(validate_marks(value, max_marks))}
            for pan, value in marks.items()
        ]
        data = await self._request(
            "POST",
            "/marks",
            json={"class_exam_id": str(class_exam_id), "subject": subject, "marks": entries},
        )
        self.cache.invalidate(f"exams/marks/{class_exam_id}")
        return data

    async def list_marks(self, class_exam_id: Any, subject: Optional[str] = None) -> List[Dict[str, Any]]:
        return await self._cached_get(
            f"exams/marks/{class_exam_id}/{subject or 'all'}",
            f"/marks/class-exam/{class_exam_id}",
            {"subject": subject},
        )
