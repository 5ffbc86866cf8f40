"""Realtime relay: channel registry and the websocket endpoint dispatching client events."""
