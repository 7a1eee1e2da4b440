"""Real-time infrastructure — WebSocket push hub + pub/sub command bridge.

Learn: Events flow through two channels:
1. Store mutation → Hub broadcast → every open WebSocket (UI clients)
2. Store mutation → Bridge PUBLISH → pub/sub subscribers (automation)

The connection registry is owned by the app (app.state.registry) and
handed to both the accept path and the broadcast path. No module globals.
"""
