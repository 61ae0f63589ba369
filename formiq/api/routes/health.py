# formiq/api/routes/health.py
from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter(tags=["health"])


@router.get("/", response_class=PlainTextResponse)
async def index() -> str:
    return "Welcome to the Project Intake API"


@router.get("/health")
async def health() -> dict:
    return {"status": "ok"}
