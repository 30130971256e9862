"""
Main entry point for ShelfScope backend API.

The HTTP surface is the three CORS relay endpoints. Reading, listening, catalog
lookups and the per-user library (services.reader, services.listening,
services.catalog, services.book_loader, services.library_store) are library
services called in-process by the client layer; they have no routes here.
"""
import logging
from typing import Dict, Optional

import httpx
from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from config import PORT, LOG_LEVEL, LOG_FORMAT, CORS_ORIGINS
from logger import setup_logging
from models.relay import BodyKind, RelayMessages, RelayResponse
from services.proxy_relay import ProxyRelay

if LOG_FORMAT == "json":
    setup_logging(LOG_LEVEL)

# Initialize logging
logger = logging.getLogger(__name__)

# In-process services with no HTTP routes
LIBRARY_SERVICES = ["book_loader", "catalog", "library_store", "listening", "reader"]

# Initialize FastAPI app
app = FastAPI(
    title="ShelfScope",
    description=(
        "CORS relay for public-domain book text and audiobook catalogs. "
        "Reading, listening, catalog and library features are in-process services, not routes."
    ),
    version="1.0.0"
)

# Browsers on any origin must be able to read relay responses
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
)

BOOK_TEXT = "book-text"
LIBRIVOX = "librivox"
OPENLIBRARY = "openlibrary"


def build_relays(transport: Optional[httpx.BaseTransport] = None) -> Dict[str, ProxyRelay]:
    """Create the three relay instances, one per upstream target."""
    return {
        BOOK_TEXT: ProxyRelay(
            name=BOOK_TEXT,
            body_kind=BodyKind.RAW_TEXT,
            messages=RelayMessages(
                missing="No URL provided.",
                upstream_error="Failed to fetch book content.",
                transport_error="An error occurred while fetching the book text."
            ),
            transport=transport
        ),
        LIBRIVOX: ProxyRelay(
            name=LIBRIVOX,
            body_kind=BodyKind.JSON,
            messages=RelayMessages(
                missing="No LibriVox API URL provided.",
                upstream_error="Failed to fetch from LibriVox API.",
                transport_error="An error occurred while fetching from LibriVox."
            ),
            transport=transport
        ),
        OPENLIBRARY: ProxyRelay(
            name=OPENLIBRARY,
            body_kind=BodyKind.JSON,
            messages=RelayMessages(
                missing="No Open Library API URL provided.",
                upstream_error="Failed to fetch from Open Library API.",
                transport_error="An error occurred while fetching from Open Library."
            ),
            transport=transport
        ),
    }


# Relays hold no per-request state, so one set serves every request
relays: Dict[str, ProxyRelay] = build_relays()


def _to_http(result: RelayResponse) -> Response:
    if result.ok and result.body_kind == BodyKind.JSON:
        return JSONResponse(content=result.body, status_code=result.status)
    return Response(content=result.body, status_code=result.status, media_type=result.media_type)


@app.on_event("startup")
async def startup_event():
    """Log relay configuration on startup."""
    logger.info("Starting ShelfScope relays: " + ", ".join(sorted(relays)))
    if "*" in CORS_ORIGINS:
        logger.info("CORS open to all origins")


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "ShelfScope API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy",
        "service": "shelfscope",
        "version": "1.0.0",
        "relays": sorted(relays),
        "library_services": LIBRARY_SERVICES
    }


# Handlers are sync so each outbound fetch runs on FastAPI's threadpool.
# The `url` value arrives already percent-decoded once by query parsing.

@app.get("/relay/book-text")
def book_text_relay(url: Optional[str] = Query(None)) -> Response:
    """Relay a plain-text book download."""
    return _to_http(relays[BOOK_TEXT].relay(url))


@app.get("/relay/librivox")
def librivox_relay(url: Optional[str] = Query(None)) -> Response:
    """Relay a LibriVox feed API call."""
    return _to_http(relays[LIBRIVOX].relay(url))


@app.get("/relay/openlibrary")
def openlibrary_relay(url: Optional[str] = Query(None)) -> Response:
    """Relay an Open Library API call."""
    return _to_http(relays[OPENLIBRARY].relay(url))


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting ShelfScope API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
