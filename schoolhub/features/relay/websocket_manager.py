from typing import Any, Dict, List, Optional
from fastapi import WebSocket
import logging

logger = logging.getLogger(__name__)


class RelayGateway:
    """
    Channel registry for the realtime relay.
    Every client joins the channel named after its own user id; handlers
    push events either to a channel or straight back to the calling socket.
    Built once per application and handed to the handlers.
    """

    def __init__(self):
        # Store active connections: {channel: [websocket1, websocket2, ...]}
        self.channels: Dict[str, List[WebSocket]] = {}

    async def connect(self, websocket: WebSocket):
        """Accept a new WebSocket connection"""
        await websocket.accept()
        logger.info("WebSocket connection accepted")

    def join(self, websocket: WebSocket, channel: str):
        """Bind a connection to a channel (no authentication happens here)"""
        connections = self.channels.setdefault(channel, [])
        if websocket not in connections:
            connections.append(websocket)
        logger.info(f"Connection joined channel {channel}. Members: {len(connections)}")

    def disconnect(self, websocket: WebSocket):
        """Remove a connection from every channel it joined"""
        for channel in list(self.channels.keys()):
            connections = self.channels[channel]
            if websocket in connections:
                connections.remove(websocket)
                logger.info(f"Connection left channel {channel}. Remaining: {len(connections)}")
            # Clean up empty channels
            if not connections:
                del self.channels[channel]

    def channels_of(self, websocket: WebSocket) -> List[str]:
        return [channel for channel, connections in self.channels.items() if websocket in connections]

    async def send(self, websocket: WebSocket, event: str, payload: Optional[Dict[str, Any]] = None) -> bool:
        """Send an event to a single connection"""
        try:
            await websocket.send_json({"mt": event, **(payload or {})})
            return True
        except Exception as e:
            logger.error(f"Error sending {event} to WebSocket: {e}")
            self.disconnect(websocket)
            return False

    async def emit(self, channel: str, event: str, payload: Optional[Dict[str, Any]] = None) -> int:
        """Send an event to every member of a channel, returns the number of deliveries"""
        connections = self.channels.get(channel)
        if not connections:
            logger.debug(f"No members in channel {channel}, dropping {event}")
            return 0

        delivered = 0
        for connection in list(connections):
            if await self.send(connection, event, payload):
                delivered += 1
        return delivered

    def get_total_connections(self) -> int:
        return sum(len(connections) for connections in self.channels.values())
