from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hospital.api.v1 import appointments, audit, auth, beds, clinical_records, doctors, invoices, patients
from hospital.core.config import Settings, get_settings
from hospital.core.logging import configure_logging
from hospital.db.session import build_engine, init_db, open_session
from hospital.services import ensure_seed_data
from hospital.services.audit import NULL_SINK, DatabaseAuditSink

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(title=settings.project_name)
    app.state.settings = settings
    app.state.engine = build_engine(settings)
    app.state.audit_sink = DatabaseAuditSink(app.state.engine) if settings.audit_enabled else NULL_SINK

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    def on_startup() -> None:
        init_db(app.state.engine)
        with open_session(app.state.engine) as session:
            ensure_seed_data(session, settings)
        logger.info("%s started", settings.project_name)

    @app.on_event("shutdown")
    def on_shutdown() -> None:
        app.state.audit_sink.close()
        app.state.engine.dispose()

    @app.get("/healthz", tags=["system"])
    def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(auth.router, prefix="/api/v1")
    app.include_router(patients.router, prefix="/api/v1")
    app.include_router(doctors.router, prefix="/api/v1")
    app.include_router(appointments.router, prefix="/api/v1")
    app.include_router(beds.router, prefix="/api/v1")
    app.include_router(clinical_records.router, prefix="/api/v1")
    app.include_router(invoices.router, prefix="/api/v1")
    app.include_router(audit.router, prefix="/api/v1")
    return app


app = create_app()
