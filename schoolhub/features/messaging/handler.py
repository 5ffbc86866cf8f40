import logging
from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import WebSocket
from sentry_sdk import capture_exception

from schoolhub.common import constants
from schoolhub.common.constants import CONVERSATION_TYPE, ROLE_TYPE
from schoolhub.common.exceptions import (
    ContentRequired,
    InvalidRecipient,
    InvalidRelatedStudent,
    MissingFields,
    RelayException,
    SchoolMismatch,
    UserNotFound,
)
from schoolhub.features.directory.repository import IdentityDirectory, public_profile, school_of
from schoolhub.features.messaging.repository import ConversationStore
from schoolhub.features.relay.websocket_manager import RelayGateway
from schoolhub.utils.object_ids import id_str

logger = logging.getLogger(__name__)


def derive_conversation_type(sender_role: Optional[str], recipient_role: Optional[str]) -> str:
    """
    teacher<->parent threads are ``teacher_parent``; every other pair,
    including ones without a teacher, is filed as ``teacher_student``.
    """
    if {sender_role, recipient_role} == {ROLE_TYPE["TEACHER"], ROLE_TYPE["PARENT"]}:
        return CONVERSATION_TYPE["TEACHER_PARENT"]
    return CONVERSATION_TYPE["TEACHER_STUDENT"]


class DirectMessageHandler:
    """Validates, stores and relays text messages between two members of a school"""

    def __init__(self, gateway: RelayGateway, directory: IdentityDirectory, store: ConversationStore):
        self.gateway = gateway
        self.directory = directory
        self.store = store

    async def handle(self, websocket: WebSocket, payload: Dict[str, Any]):
        try:
            await self.send_message(websocket, payload)
        except RelayException as e:
            logger.info(f"Direct message rejected: {e.code}")
            await self.gateway.send(websocket, "send-failed", {"error": e.message, "code": e.code})
        except Exception as e:
            logger.exception(f"Error sending direct message: {e}")
            capture_exception(e)
            await self.gateway.send(websocket, "send-failed", {"error": constants.FAILED_TO_SEND_MESSAGE})

    async def _related_student(self, related_id: Any, school_id: str) -> Optional[ObjectId]:
        """The student a teacher/parent thread is about, which must belong to the same school"""
        if not related_id:
            return None
        student = await self.directory.get_user(related_id)
        if not student or student.get("role") != ROLE_TYPE["STUDENT"] or school_of(student) != school_id:
            raise InvalidRelatedStudent()
        return student["_id"]

    async def send_message(self, websocket: WebSocket, payload: Dict[str, Any]) -> Dict[str, Any]:
        content = payload.get("content")
        content = content.strip() if isinstance(content, str) else ""
        if not content:
            raise ContentRequired()

        sender_id = payload.get("from")
        recipient_id = payload.get("to")
        school_id = payload.get("schoolId")
        if not sender_id or not recipient_id or not school_id:
            raise MissingFields()

        if str(sender_id) == str(recipient_id):
            raise InvalidRecipient()

        sender = await self.directory.get_user(sender_id)
        recipient = await self.directory.get_user(recipient_id)
        if not sender or not recipient:
            raise UserNotFound()

        if school_of(sender) != str(school_id) or school_of(recipient) != str(school_id):
            raise SchoolMismatch()

        conversation_type = derive_conversation_type(sender.get("role"), recipient.get("role"))
        related_student = None
        if conversation_type == CONVERSATION_TYPE["TEACHER_PARENT"]:
            related_student = await self._related_student(payload.get("relatedStudent"), str(school_id))

        message = await self.store.create_text_message(
            sender_id=sender["_id"],
            recipient_id=recipient["_id"],
            school_id=sender["school"],
            content=content,
            conversation_type=conversation_type,
            related_student=related_student,
        )
        message_id = str(message["_id"])
        timestamp = message["created_at"].isoformat()
        logger.info(f"Message {message_id} stored ({conversation_type})")

        await self.gateway.emit(str(recipient["_id"]), "message-delivered", {
            "id": message_id,
            "from": public_profile(sender),
            "content": message["content"],
            "conversationType": conversation_type,
            "relatedStudent": id_str(related_student),
            "timestamp": timestamp,
        })

        await self.gateway.send(websocket, "message-sent", {
            "id": message_id,
            "success": True,
            "timestamp": timestamp,
            "message": {
                "id": message_id,
                "content": message["content"],
                "createdAt": timestamp,
                "conversationType": conversation_type,
            },
        })
        return message
