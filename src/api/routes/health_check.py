import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlmodel.ext.asyncio.session import AsyncSession

from src.depends import get_session

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/api/health", status_code=status.HTTP_200_OK)
async def health():
    return {"success": True, "data": {"status": "ok"}, "message": None}


@router.get("/healthz", status_code=status.HTTP_200_OK)
async def liveness():
    return {"status": "ok"}


@router.get("/readyz")
async def readiness(session: AsyncSession = Depends(get_session)):
    """Ready once the central database answers."""
    try:
        await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Central database not reachable: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unavailable"},
        )
    return {"status": "ok"}
