"""Real-time infrastructure — in-process hub, Redis relay, WebSocket.

Events flow:
1. OrderService → BroadcastHub.publish (after the write is committed)
2. BroadcastHub → one queue per connected WebSocket → client
3. Optionally BroadcastHub ↔ Redis, so every app process sees every event
"""
