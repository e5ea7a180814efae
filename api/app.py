from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import sessionmaker

from developer_tracking import DeveloperReadService, TrackerConfig
from data_ingestion import IngestionService
from api.router import router as developers_router
from api.router import service_router


def create_app(
    read_service: Optional[DeveloperReadService] = None,
    ingestion: Optional[IngestionService] = None,
    session_factory: Optional[sessionmaker] = None,
    config: Optional[TrackerConfig] = None,
) -> FastAPI:
    """
    Build the read API.

    Pass an IngestionService to share its read service and expose
    /stats, or a session factory for a read-only deployment.
    """
    if read_service is None:
        if ingestion is not None:
            read_service = ingestion.read_service
        elif session_factory is not None:
            read_service = DeveloperReadService(session_factory, config)
        else:
            raise ValueError("create_app needs a read service, an ingestion service or a session factory")

    app = FastAPI(
        title="Developer Tracker API",
        description="Reputation and risk of token-launch developers.",
        version="1.0.0",
    )
    app.state.read_service = read_service
    app.state.ingestion = ingestion

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.include_router(developers_router)
    app.include_router(service_router)

    @app.get("/")
    def root():
        return {"status": "ok", "message": "Developer Tracker API is running"}

    return app
