import logging
from datetime import datetime
from typing import Any, Dict

from fastapi import WebSocket
from sentry_sdk import capture_exception

from schoolhub.common import constants
from schoolhub.common.constants import DEFAULT_GRADE_LEVEL, MESSAGE_KIND, ROLE_TYPE
from schoolhub.common.exceptions import EmptyQuestion, NotAStudent, RelayException
from schoolhub.features.directory.repository import IdentityDirectory, display_name
from schoolhub.features.messaging.repository import ConversationStore
from schoolhub.features.relay.websocket_manager import RelayGateway
from schoolhub.features.tutor.provider import TutorProviderAdapter
from schoolhub.utils.locks import KeyedLock
from schoolhub.utils.transcript import build_turns, read_exchange

logger = logging.getLogger(__name__)


def exchange_summary(record: Dict[str, Any]) -> Dict[str, Any]:
    question, answer = read_exchange(record)
    return {
        "id": str(record["_id"]),
        "question": question,
        "answer": answer,
        "timestamp": record["created_at"].isoformat(),
        "type": record.get("kind", MESSAGE_KIND["AI_QUERY"]),
    }


class TutoringSessionHandler:
    """
    Answers a student's question with the AI tutor.
    Replies go to the asking connection only; tutoring is never broadcast.
    Questions from the same student are answered one at a time so each
    answer sees the previous exchange in its context.
    """

    def __init__(
        self,
        gateway: RelayGateway,
        directory: IdentityDirectory,
        store: ConversationStore,
        adapter: TutorProviderAdapter,
        locks: KeyedLock,
        context_limit: int = 30,
        history_limit: int = 50,
    ):
        self.gateway = gateway
        self.directory = directory
        self.store = store
        self.adapter = adapter
        self.locks = locks
        self.context_limit = context_limit
        self.history_limit = history_limit

    async def handle(self, websocket: WebSocket, payload: Dict[str, Any]):
        try:
            await self.answer_question(websocket, payload)
        except RelayException as e:
            logger.info(f"Tutor request rejected: {e.code}")
            await self.send_error(websocket, e.message)
        except Exception as e:
            logger.exception(f"Error answering tutor question: {e}")
            capture_exception(e)
            await self.gateway.send(websocket, "tutor-thinking", {"thinking": False})
            await self.send_error(websocket, constants.TUTOR_BUSY)

    async def answer_question(self, websocket: WebSocket, payload: Dict[str, Any]) -> Dict[str, Any]:
        question = payload.get("question")
        question = question.strip() if isinstance(question, str) else ""
        if not question:
            raise EmptyQuestion()

        student = await self.directory.get_user(payload.get("userId"))
        if not student or student.get("role") != ROLE_TYPE["STUDENT"]:
            raise NotAStudent()

        async with self.locks.hold(str(student["_id"])):
            return await self._run_session(websocket, student, question)

    async def _run_session(self, websocket: WebSocket, student: Dict[str, Any], question: str) -> Dict[str, Any]:
        grade_level = await self._grade_level(student)
        student_name = display_name(student)

        previous = await self.store.recent_ai_exchanges(student["_id"], student.get("school"), self.context_limit)
        turns = build_turns(previous, question)

        await self.gateway.send(websocket, "tutor-thinking", {"thinking": True})
        result = await self.adapter.get_answer(question, turns, student_name, grade_level)
        await self.gateway.send(websocket, "tutor-thinking", {"thinking": False})

        answer = result.answer
        record = await self.store.create_ai_exchange(
            student_id=student["_id"],
            school_id=student.get("school"),
            question=question,
            answer=answer,
        )
        logger.info(f"Tutor exchange {record['_id']} stored via {result.provider_used}")

        summary = exchange_summary(record)
        await self.gateway.send(websocket, "conversation-appended", summary)
        await self.gateway.send(websocket, "tutor-response", {
            "success": True,
            "question": question,
            "answer": answer,
            "gradeLevel": grade_level,
            "timestamp": summary["timestamp"],
            "usedFallback": result.used_fallback,
            "totalConversationMessages": len(turns),
        })
        return record

    async def _grade_level(self, student: Dict[str, Any]) -> str:
        try:
            return await self.directory.get_grade_level(student)
        except Exception as e:
            logger.warning(f"Could not resolve grade for {student['_id']}: {e}")
            return DEFAULT_GRADE_LEVEL

    async def send_error(self, websocket: WebSocket, message: str):
        await self.gateway.send(websocket, "tutor-error", {
            "error": message,
            "timestamp": datetime.utcnow().isoformat(),
        })

    async def send_learning_history(self, websocket: WebSocket, payload: Dict[str, Any]):
        """Most recent tutor exchanges of a student, newest first"""
        try:
            student = await self.directory.get_user(payload.get("userId"))
            if not student or student.get("role") != ROLE_TYPE["STUDENT"]:
                raise NotAStudent()

            records, _ = await self.store.ai_history_page(student["_id"], student.get("school"), self.history_limit)
            sessions = [exchange_summary(record) for record in records]
            await self.gateway.send(websocket, "learning-history", {
                "success": True,
                "sessions": sessions,
                "totalCount": len(sessions),
            })
        except RelayException as e:
            await self.gateway.send(websocket, "learning-history", {"success": False, "error": e.message})
        except Exception as e:
            logger.exception(f"Error loading learning history: {e}")
            capture_exception(e)
            await self.gateway.send(websocket, "learning-history", {
                "success": False,
                "error": constants.LEARNING_HISTORY_FAILED,
            })
