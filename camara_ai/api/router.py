from fastapi import APIRouter
from camara_ai.api.endpoints import assistant

api_router = APIRouter()

# Combine all sub-routers into one
api_router.include_router(assistant.router)
