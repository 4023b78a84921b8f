"""
Flood Telemetry Relay - Backend
===============================
FastAPI application that relays flood-monitoring telemetry in real time.

ARCHITECTURE:
    Water-level / rain gauge stations and dashboards all connect to the
    same WebSocket. Every reading a station sends is classified and then
    pushed out to everybody else.

    [AWLR Station] --ws--\\                        /--ws--> [Dashboard]
    [AWLR Station] --ws---> [This Relay /ws] ------+--ws--> [Dashboard]
                                  |                \\--ws--> [Other stations]
                                  | GET once per connection
                                  v
                        [Threshold Config Endpoint]

HOW TO RUN:
    # Install
    pip install -e .

    # Copy environment config (optional, defaults work for docker-compose)
    cp .env.example .env

    # Run the relay (port 8001 by default)
    flood-relay
    # or
    uvicorn flood_relay.main:app --port 8001

API DOCUMENTATION:
    After starting the server, visit:
    - Swagger UI: http://localhost:8001/docs
    - Health: http://localhost:8001/health
"""

import logging
import os
import sys
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from flood_relay import __version__
from flood_relay.models import ThresholdPair
from flood_relay.routers import relay_router, set_relay_services, get_hub
from flood_relay.services import ConnectionHub, ThresholdService


# Load environment variables from .env file
load_dotenv()


# =============================================================================
# CONFIGURATION
# =============================================================================

class Config:
    """
    Application configuration loaded from environment variables.

    Environment Variables:
        THRESHOLD_URL: Endpoint returning {"Normal": int, "Banjir": int}
        THRESHOLD_TIMEOUT: Seconds to wait for the threshold endpoint (default: 10)
        DEFAULT_NORMAL_LEVEL: Normal level used when the endpoint fails (default: 100)
        DEFAULT_BANJIR_LEVEL: Banjir level used when the endpoint fails (default: 80)
        RELAY_HOST: Bind address (default: 0.0.0.0)
        RELAY_PORT: Listening port (default: 8001)
        LOG_LEVEL: DEBUG / INFO / WARNING / ERROR (default: INFO)

    Defaults are set for running inside docker next to the config API.
    """

    THRESHOLD_URL = os.getenv("THRESHOLD_URL", "http://host.docker.internal:3000/api/level")
    THRESHOLD_TIMEOUT = float(os.getenv("THRESHOLD_TIMEOUT", "10"))

    DEFAULT_NORMAL_LEVEL = int(os.getenv("DEFAULT_NORMAL_LEVEL", "100"))
    DEFAULT_BANJIR_LEVEL = int(os.getenv("DEFAULT_BANJIR_LEVEL", "80"))

    RELAY_HOST = os.getenv("RELAY_HOST", "0.0.0.0")
    RELAY_PORT = int(os.getenv("RELAY_PORT", "8001"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    @classmethod
    def default_thresholds(cls) -> ThresholdPair:
        """
        Built-in fallback levels.

        Raises:
            ValueError: If DEFAULT_BANJIR_LEVEL is not below DEFAULT_NORMAL_LEVEL
        """
        return ThresholdPair(normal=cls.DEFAULT_NORMAL_LEVEL, banjir=cls.DEFAULT_BANJIR_LEVEL)


logging.basicConfig(
    level=Config.LOG_LEVEL,
    format='[%(asctime)s] %(levelname)s %(name)s: %(message)s',
    datefmt='%H:%M:%S',
    handlers=[logging.StreamHandler(sys.stderr)]
)
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFESPAN
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    STARTUP:
        1. Validate the default levels (inverted levels = refuse to start)
        2. Create the threshold service and the connection hub
        3. Inject them into the relay router

    SHUTDOWN:
        1. Close every open connection (sessions clean themselves up)
        2. Close the HTTP client
    """
    # ========== STARTUP ==========
    defaults = Config.default_thresholds()

    threshold_service = ThresholdService(
        threshold_url=Config.THRESHOLD_URL,
        defaults=defaults,
        request_timeout=Config.THRESHOLD_TIMEOUT,
    )
    hub = ConnectionHub()

    set_relay_services(hub, threshold_service)

    print("=" * 60)
    print("FLOOD TELEMETRY RELAY - Starting")
    print("=" * 60)
    print(f"   Threshold endpoint: {Config.THRESHOLD_URL}")
    print(f"   Default levels: Normal={defaults.normal}, Banjir={defaults.banjir}")
    print(f"   WebSocket: ws://{Config.RELAY_HOST}:{Config.RELAY_PORT}/ws")
    print("=" * 60)

    yield  # Application runs here

    # ========== SHUTDOWN ==========
    logger.info("Shutting down...")
    await hub.close_all()
    await threshold_service.close()
    logger.info("Shutdown complete")


# =============================================================================
# CREATE FASTAPI APPLICATION
# =============================================================================

app = FastAPI(
    title="Flood Telemetry Relay",
    description="""
## Overview

Real-time relay for flood-monitoring telemetry.

## How It Works

1. **Connect** - Stations and dashboards open a WebSocket on `/ws`
2. **Send** - Stations send readings (`elevation`, `curah_hujan`)
3. **Relay** - Each reading gets `status_elevation`, `status_curah_hujan`
   and a `timestamp`, then goes to every other client

## Status Labels

| Field | Values |
|-------|--------|
| `status_elevation` | Normal, Siaga, Banjir |
| `status_curah_hujan` | Tidak ada hujan, Hujan ringan, Hujan sedang, Hujan deras |
    """,
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


# =============================================================================
# CORS MIDDLEWARE
# =============================================================================

# Any origin may connect
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# INCLUDE ROUTERS
# =============================================================================

app.include_router(relay_router)


# =============================================================================
# ROOT ENDPOINTS
# =============================================================================

@app.get(
    "/",
    summary="API Information",
    description="Get basic relay information and available endpoints."
)
async def root():
    """Root endpoint with relay overview."""
    return {
        "name": "Flood Telemetry Relay",
        "version": __version__,
        "documentation": {
            "swagger": "/docs",
            "redoc": "/redoc",
            "openapi": "/openapi.json"
        },
        "endpoints": {
            "relay": "WS /ws",
            "health": "GET /health"
        }
    }


@app.get(
    "/health",
    summary="Health Check",
    description="Check if the relay is running and how many clients are connected."
)
async def health():
    """Health check endpoint."""
    hub = get_hub()
    return {
        "status": "healthy",
        "connection_count": hub.connection_count,
        "threshold_endpoint": Config.THRESHOLD_URL
    }


def run():
    """Start the relay with uvicorn (the `flood-relay` command)."""
    uvicorn.run(
        "flood_relay.main:app",
        host=Config.RELAY_HOST,
        port=Config.RELAY_PORT,
        log_level=Config.LOG_LEVEL.lower(),
    )
