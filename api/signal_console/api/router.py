from fastapi import APIRouter

from signal_console.api.routes import candidates, definitions, evaluations, generation, health

api_router = APIRouter()
api_router.include_router(candidates.router, tags=["review"])
api_router.include_router(definitions.router, tags=["masters"])
api_router.include_router(evaluations.router, tags=["evaluations"])
api_router.include_router(generation.router, tags=["generation"])
