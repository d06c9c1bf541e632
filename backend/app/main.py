"""
XyloMail Backend API
FastAPI application that zips uploaded files and emails them to recipients.
"""

import logging
import os
import socket
from typing import List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import load_settings, missing_required_env
from app.routers import send_email

# Configure logging to output to console
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def _is_usable_lan_ip(ip: str) -> bool:
    """Return True if the IP is a usable LAN address (not loopback, not Docker internal)."""
    if ip.startswith("127."):
        return False
    # Docker bridge network
    if ip.startswith("172."):
        return False
    # Docker Desktop for Mac resolves host.docker.internal to 192.168.65.x
    if ip.startswith("192.168.65."):
        return False
    return True


def get_local_ip() -> Optional[str]:
    """
    Detect the host machine's local network IP address.

    ``HOST_IP`` wins when set; otherwise the OS is asked which interface it
    would route through. Returns None when detection fails.
    """
    host_ip = os.getenv("HOST_IP", "").strip()
    if host_ip:
        return host_ip

    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
            s.connect(("8.8.8.8", 80))
            ip = s.getsockname()[0]
            if _is_usable_lan_ip(ip):
                return ip
    except OSError:
        pass

    return None


def get_cors_origins() -> List[str]:
    """
    Build the list of allowed CORS origins.

    Always includes http://localhost:3000 (the frontend dev server) and its
    LAN equivalent when the local IP is detectable. Additional origins come
    from CORS_ORIGINS as a comma-separated list. Duplicates are removed while
    preserving order.
    """
    always_included = ["http://localhost:3000"]

    local_ip = get_local_ip()
    if local_ip:
        always_included.append(f"http://{local_ip}:3000")

    extra_origins: List[str] = []
    cors_env = os.getenv("CORS_ORIGINS", "").strip()
    if cors_env:
        extra_origins = [o.strip() for o in cors_env.split(",") if o.strip()]

    seen: set = set()
    origins: List[str] = []
    for origin in always_included + extra_origins:
        if origin not in seen:
            seen.add(origin)
            origins.append(origin)

    return origins


app = FastAPI(
    title="XyloMail API",
    description="Bundle files into a ZIP archive and email it to up to five recipients",
    version=VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(send_email.router, prefix="/api", tags=["send-email"])


@app.on_event("startup")
async def check_environment() -> None:
    """Log each missing transport variable, then the URL the API listens on."""
    for name in missing_required_env():
        logger.error(f"Missing required environment variable: {name}")

    host_port = os.getenv("HOST_PORT", "8000")
    logger.info("XyloMail API running at http://localhost:%s", host_port)


@app.get("/")
async def root():
    return {"message": "XyloMail API", "version": VERSION}


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/health/transports")
async def health_transports():
    """Report which transports have credentials configured. Never returns secrets."""
    settings = load_settings()
    return {
        "status": "ok",
        "primary": {"provider": "brevo", "configured": settings.brevo.configured},
        "fallback": {"provider": "smtp", "configured": settings.smtp.configured},
    }
