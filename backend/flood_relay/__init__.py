"""
Flood Telemetry Relay
=====================

This is the Python package for the relay backend.

HOW IT'S ORGANIZED:
------------------
- models/    = Wire formats (what does a reading look like on the socket?)
- services/  = Workers (classify readings, track connections, broadcast)
- routers/   = Endpoints (the WebSocket door sensors and dashboards use)
- main.py    = Puts it all together and starts the server
"""

__version__ = "1.0.0"
