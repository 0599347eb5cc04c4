"""Endpoints REST do backend agrupados por domínio.

Cada método desembrulha o envelope e levanta BackendError quando
`success` é false. Credenciais trafegam apenas via cookie do HttpClient.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from medconnect_client.adapters.backend.envelope import unwrap
from medconnect_client.adapters.backend.normalizer import normalize_ai_record
from medconnect_client.domain.auth import Role
from medconnect_client.domain.chat import AiChatRecord, ChatSurface
from medconnect_client.domain.errors import ClientError
from medconnect_client.infra.http import HttpClient
from medconnect_client.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

AI_CHAT_TIMEOUT_SECONDS = 15.0


class _EndpointGroup:
    def __init__(self, http: HttpClient) -> None:
        self._http = http

    async def _call(self, method: str, path: str, default_message: str, **kwargs: Any) -> Any:
        response = await self._http.request(method, path, **kwargs)
        return unwrap(response, default_message)


class AuthApi(_EndpointGroup):
    """Login, cadastro e logout."""

    async def login(self, email: str, password: str) -> Any:
        # 401 aqui significa credencial inválida, não sessão expirada
        return await self._call(
            "POST",
            "/api/user/login",
            "Login failed",
            json={"data": email, "password": password},
            auth_recovery=False,
        )

    async def signup(
        self,
        name: str,
        email: str,
        password: str,
        role: Role = Role.PATIENT,
        **additional: Any,
    ) -> Any:
        """Cadastro de paciente ou médico.

        `additional` aceita last_name, specialty, clinic_location, location, phone.
        """
        payload: dict[str, Any] = {"email": email, "password": password, "role": str(role)}
        if additional.get("last_name"):
            payload["firstName"] = name
            payload["lastName"] = additional["last_name"]
        else:
            payload["name"] = name
        if additional.get("specialty"):
            payload["specialty"] = additional["specialty"]
        if additional.get("clinic_location"):
            payload["clinicLocation"] = additional["clinic_location"]
        elif additional.get("location"):
            payload["location"] = additional["location"]
        if additional.get("phone"):
            payload["phone"] = additional["phone"]
        return await self._call(
            "POST", "/api/user/signup", "Signup failed", json=payload, auth_recovery=False
        )

    async def logout(self) -> None:
        """Logout no servidor; falhas não são críticas e apenas são logadas."""
        try:
            await self._http.request("POST", "/api/user/logout", json={}, auth_recovery=False)
        except ClientError as e:
            logger.warning("Server logout failed", extra={"error_type": type(e).__name__})


class UserApi(_EndpointGroup):
    async def get_authenticated_profile(self) -> Any:
        return await self._call(
            "GET", "/api/user/authenticated-profile", "Failed to fetch profile"
        )

    async def update_patient_profile(
        self, fields: dict[str, Any], files: dict[str, Any] | None = None
    ) -> Any:
        data = await self._call(
            "PUT", "/api/user/update-patient", "Failed to update profile", data=fields, files=files
        )
        return (data or {}).get("user")

    async def update_doctor_profile(
        self, fields: dict[str, Any], files: dict[str, Any] | None = None
    ) -> Any:
        data = await self._call(
            "PUT", "/api/user/update-doctor", "Failed to update profile", data=fields, files=files
        )
        return (data or {}).get("user")


class DoctorApi(_EndpointGroup):
    async def get_all_doctors(self) -> list[Any]:
        return await self._call("GET", "/api/patient/fetchAllDoctors", "Failed to fetch doctors")

    async def get_doctor_by_id(self, doctor_id: str) -> Any:
        return await self._call("GET", f"/api/doctor/{doctor_id}", "Failed to fetch doctor")

    async def get_pending_requests(self) -> list[Any]:
        return await self._call(
            "GET", "/api/doctor/pending-requests", "Failed to fetch pending requests"
        )

    async def get_all_appointments(self) -> list[Any]:
        return await self._call(
            "GET", "/api/doctor/all-appointments", "Failed to fetch appointments"
        )

    async def respond_to_appointment_request(
        self, appointment_id: str, action: str, rejection_reason: str | None = None
    ) -> Any:
        if action not in ("accept", "reject"):
            raise ValueError("action must be 'accept' or 'reject'")
        payload: dict[str, Any] = {"action": action}
        if action == "reject":
            payload["rejectionReason"] = rejection_reason
        return await self._call(
            "PATCH",
            f"/api/doctor/appointment-requests/{appointment_id}/respond",
            "Failed to respond to appointment",
            json=payload,
        )

    async def complete_appointment_with_prescription(
        self, appointment_id: str, prescription_text: str
    ) -> Any:
        return await self._call(
            "PATCH",
            f"/api/doctor/appointments/{appointment_id}/complete",
            "Failed to complete appointment",
            json={"prescriptionText": prescription_text},
        )


class PatientApi(_EndpointGroup):
    async def book_appointment(
        self,
        doctor_id: str,
        date: str,
        time: str,
        appointment_type: str,
        notes: str | None = None,
    ) -> Any:
        return await self._call(
            "POST",
            "/api/patient/book-direct-appointment",
            "Failed to book appointment",
            json={
                "doctorId": doctor_id,
                "date": date,
                "time": time,
                "appointmentType": appointment_type,
                "notes": notes,
            },
        )

    async def get_my_appointments(self) -> list[Any]:
        return await self._call(
            "GET", "/api/patient/all-appointments", "Failed to fetch appointments"
        )

    async def cancel_appointment(self, appointment_id: str) -> None:
        await self._call(
            "PATCH",
            f"/api/patient/appointments/{appointment_id}/cancel",
            "Failed to cancel appointment",
            json={},
        )

    async def get_prescriptions(self) -> list[Any]:
        return await self._call(
            "GET", "/api/patient/view-Prescriptions", "Failed to fetch prescriptions"
        )


class ReportApi(_EndpointGroup):
    async def upload_report(
        self, filename: str, content: bytes, content_type: str = "application/pdf"
    ) -> Any:
        return await self._call(
            "POST",
            "/api/report",
            "Failed to upload report",
            files={"report": (filename, content, content_type)},
        )

    async def get_report(self, report_id: str) -> Any:
        return await self._call("GET", f"/api/report/{report_id}", "Failed to fetch report")

    async def delete_report(self, report_id: str) -> None:
        await self._call("DELETE", f"/api/report/{report_id}", "Failed to delete report")


class PrescriptionApi(_EndpointGroup):
    async def create_prescription(self, appointment_id: str, prescription_text: str) -> Any:
        return await self._call(
            "POST",
            "/api/prescription",
            "Failed to create prescription",
            json={"appointmentId": appointment_id, "prescriptionText": prescription_text},
        )

    async def get_prescription_pdf(self, prescription_id: str) -> bytes:
        response = await self._http.get(f"/api/prescription-pdf/{prescription_id}")
        return response.content


class NotificationApi(_EndpointGroup):
    async def get_notifications(self) -> list[Any]:
        data = await self._call("GET", "/api/user/notifications", "Failed to fetch notifications")
        return list((data or {}).get("notifications") or [])

    async def get_unread_count(self) -> int:
        data = await self._call(
            "GET", "/api/user/notifications/unread-count", "Failed to fetch unread count"
        )
        return int((data or {}).get("unreadCount") or 0)

    async def mark_as_read(self, notification_id: str) -> None:
        await self._call(
            "PUT",
            f"/api/user/notifications/{notification_id}/read",
            "Failed to mark notification as read",
            json={},
        )

    async def mark_all_as_read(self) -> None:
        await self._call(
            "PUT", "/api/user/notifications/mark-all-read", "Failed to mark all as read", json={}
        )

    async def delete_notification(self, notification_id: str) -> None:
        await self._call(
            "DELETE",
            f"/api/user/notifications/{notification_id}",
            "Failed to delete notification",
        )


def history_path(surface: ChatSurface, identifier: str) -> str:
    """Caminho do histórico paginado para cada tipo de superfície."""
    if surface is ChatSurface.DIRECT:
        return f"/api/chat/one-on-one/{quote(identifier, safe='')}"
    if surface is ChatSurface.CITY:
        return f"/api/chat/city/{quote(identifier, safe='')}"
    return f"/api/chat/room/{quote(identifier, safe='')}"


class ChatApi(_EndpointGroup):
    async def get_history(
        self, surface: ChatSurface, identifier: str, page: int, limit: int
    ) -> Any:
        """Payload bruto de uma página de histórico (normalizado pelo loader)."""
        return await self._call(
            "GET",
            history_path(surface, identifier),
            "Failed to load chat history",
            params={"page": page, "limit": limit},
        )

    async def get_doctor_conversations(self) -> list[Any]:
        data = await self._call(
            "GET", "/api/chat/doctor/conversations", "Failed to fetch conversations"
        )
        return list((data or {}).get("conversations") or [])

    async def get_community_members(self, community_id: str) -> list[Any]:
        data = await self._call(
            "GET", f"/api/user/communities/{community_id}/members", "Failed to fetch members"
        )
        return list((data or {}).get("members") or [])


class CommunityApi(_EndpointGroup):
    async def get_city_rooms(self, role: Role = Role.PATIENT) -> list[Any]:
        prefix = "doctor" if role is Role.DOCTOR else "patient"
        data = await self._call("GET", f"/api/{prefix}/city-rooms", "Failed to fetch city rooms")
        return data if isinstance(data, list) else [data]


class AiChatApi(_EndpointGroup):
    async def get_history(self) -> list[AiChatRecord]:
        data = await self._call("GET", "/api/ai-chat/history", "Failed to load chat history")
        chats = (data or {}).get("chats") if isinstance(data, dict) else data
        return [normalize_ai_record(c) for c in chats or []]

    async def send_message(self, symptoms: str, language: str = "en") -> AiChatRecord:
        data = await self._call(
            "POST",
            "/api/ai-chat/process",
            "Failed to process AI request",
            json={"symptoms": symptoms, "language": language},
            timeout=AI_CHAT_TIMEOUT_SECONDS,
        )
        return normalize_ai_record(data or {})

    async def clear_history(self) -> None:
        await self._call("DELETE", "/api/ai-chat/history", "Failed to clear history")


class VideoCallApi(_EndpointGroup):
    async def get_meeting_token(self) -> Any:
        return await self._call(
            "POST", "/api/chat/get-token", "Failed to get meeting token", json={}
        )


class BackendApi:
    """Agregado de todos os grupos de endpoints sobre um único HttpClient."""

    def __init__(self, http: HttpClient) -> None:
        self.http = http
        self.auth = AuthApi(http)
        self.user = UserApi(http)
        self.doctor = DoctorApi(http)
        self.patient = PatientApi(http)
        self.report = ReportApi(http)
        self.prescription = PrescriptionApi(http)
        self.notification = NotificationApi(http)
        self.chat = ChatApi(http)
        self.community = CommunityApi(http)
        self.ai_chat = AiChatApi(http)
        self.video_call = VideoCallApi(http)
