from __future__ import annotations

from fastapi import APIRouter

from college_events.scheduling import now_iso
from college_events.schemas import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok", timestamp=now_iso())
