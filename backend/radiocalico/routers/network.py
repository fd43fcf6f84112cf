"""
Connection metadata routes used by the player's client fingerprinting.
"""
from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/client-ip")
async def get_client_ip(request: Request):
    """
    Best guess of the caller's address.

    Prefers the first X-Forwarded-For hop, then X-Real-IP, then the socket peer.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    else:
        ip = request.headers.get("x-real-ip") or (request.client.host if request.client else "unknown")
    return {"ip": ip}
