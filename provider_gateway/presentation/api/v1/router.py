from fastapi import APIRouter

from .circuits import circuit_router
from .webhooks import webhook_router

router = APIRouter()

router.include_router(circuit_router, tags=["Circuits"])
router.include_router(webhook_router, tags=["Webhooks"])
