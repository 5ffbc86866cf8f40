import json
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pymongo.database import Database

from schoolhub.common import constants
from schoolhub.database.session import get_db
from schoolhub.features.directory.repository import IdentityDirectory
from schoolhub.features.messaging.handler import DirectMessageHandler
from schoolhub.features.messaging.repository import ConversationStore
from schoolhub.features.relay.websocket_manager import RelayGateway
from schoolhub.features.tutor.handler import TutoringSessionHandler

logger = logging.getLogger(__name__)

router = APIRouter(tags=["relay"])


class EventDispatcher:
    """Routes inbound relay events of one connection to their handlers"""

    def __init__(
        self,
        gateway: RelayGateway,
        direct_messages: DirectMessageHandler,
        tutor: TutoringSessionHandler,
    ):
        self.gateway = gateway
        self.direct_messages = direct_messages
        self.tutor = tutor

    async def dispatch(self, websocket: WebSocket, message_data: Dict[str, Any]):
        # Support both 'mt' (message type) and 'type' fields
        event = message_data.get("mt") or message_data.get("type")

        if event == "join":
            await self.join(websocket, message_data)
        elif event == "send-direct-message":
            await self.direct_messages.handle(websocket, message_data)
        elif event == "ask-tutor":
            await self.tutor.handle(websocket, message_data)
        elif event == "typing-start":
            await self.relay_typing(message_data, True)
        elif event == "typing-stop":
            await self.relay_typing(message_data, False)
        elif event == "get-learning-history":
            await self.tutor.send_learning_history(websocket, message_data)
        else:
            logger.warning(f"Unknown relay event: {event}")
            await self.gateway.send(websocket, "error", {"error": f"{constants.UNKNOWN_EVENT}: {event}"})

    async def join(self, websocket: WebSocket, message_data: Dict[str, Any]):
        user_id = message_data.get("userId")
        if not user_id:
            await self.gateway.send(websocket, "error", {"error": constants.MISSING_REQUIRED_FIELDS})
            return
        self.gateway.join(websocket, str(user_id))
        await self.gateway.send(websocket, "joined", {"userId": str(user_id)})

    async def relay_typing(self, message_data: Dict[str, Any], typing: bool):
        recipient = message_data.get("to")
        if not recipient:
            return
        await self.gateway.emit(str(recipient), "peer-typing", {
            "from": message_data.get("from"),
            "typing": typing,
        })


def build_dispatcher(state, db: Database) -> EventDispatcher:
    directory = IdentityDirectory(db)
    store = ConversationStore(db)
    return EventDispatcher(
        state.gateway,
        DirectMessageHandler(state.gateway, directory, store),
        TutoringSessionHandler(
            state.gateway,
            directory,
            store,
            state.tutor_adapter,
            state.tutor_locks,
            context_limit=state.settings.TUTOR_CONTEXT_LIMIT,
            history_limit=state.settings.LEARNING_HISTORY_LIMIT,
        ),
    )


@router.websocket("/ws")
async def relay_websocket(websocket: WebSocket, db: Database = Depends(get_db)):
    gateway: RelayGateway = websocket.app.state.gateway
    dispatcher = build_dispatcher(websocket.app.state, db)
    await gateway.connect(websocket)

    try:
        while True:
            data = await websocket.receive_text()
            await process_received_data(data, websocket, dispatcher)
    except WebSocketDisconnect:
        logger.info("Relay client disconnected")
    except Exception as e:
        logger.error(f"Relay connection error: {e}")
    finally:
        gateway.disconnect(websocket)


async def process_received_data(data: str, websocket: WebSocket, dispatcher: EventDispatcher):
    try:
        message_data = json.loads(data)
    except json.JSONDecodeError as e:
        logger.warning(f"Invalid relay frame: {e}")
        await dispatcher.gateway.send(websocket, "error", {"error": constants.INVALID_JSON})
        return

    if not isinstance(message_data, dict):
        await dispatcher.gateway.send(websocket, "error", {"error": constants.INVALID_JSON})
        return

    await dispatcher.dispatch(websocket, message_data)
