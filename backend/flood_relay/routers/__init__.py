"""
Routers Package
===============

Routers are like the reception desk - they direct incoming connections
to the right place.
"""

from .relay import router as relay_router, set_relay_services, get_hub, get_threshold_service

__all__ = [
    "relay_router",
    "set_relay_services",
    "get_hub",
    "get_threshold_service",
]
