from fastapi import FastAPI

from .comparables import router as comparables_router
from .disputes import router as disputes_router
from .forex import router as forex_router
from .penalty import router as penalty_router
from .thin_cap import router as thin_cap_router


def register_routers(app: FastAPI):
    """Register all routers with the application."""
    app.include_router(thin_cap_router)
    app.include_router(comparables_router)
    app.include_router(forex_router)
    app.include_router(disputes_router)
    app.include_router(penalty_router)
