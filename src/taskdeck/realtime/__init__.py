"""
Realtime subsystem.

- events.py: wire message codec (closed set of typed events)
- transport.py: websocket TransportConnector
- channel.py: connection state machine, reconnect policy, event streams
"""
