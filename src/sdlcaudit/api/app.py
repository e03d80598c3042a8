"""FastAPI application exposing analysis, threat modeling, fixing and reporting."""

import logging
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import Field

from .. import __version__
from ..core.analyzer import SecurityAuditor
from ..core.config import Config
from ..core.models import FixRequest, LanguageBody, ReportRequest, ThreatModelRequest


logger = logging.getLogger(__name__)

ROOT_MESSAGE = "AI SDLC Security Compliance Auditor backend is running!"


class AnalyzeBody(LanguageBody):
    code: str = Field(min_length=1)


def get_auditor(request: Request) -> SecurityAuditor:
    return request.app.state.auditor


def create_app(auditor: Optional[SecurityAuditor] = None, config: Optional[Config] = None) -> FastAPI:
    """Build the HTTP application around one shared auditor."""
    if auditor is None:
        auditor = SecurityAuditor(config or Config.get_default_config())
    config = auditor.config

    app = FastAPI(
        title="SDLC Auditor API",
        description="Multi-engine security analysis with AI review and threat modeling",
        version=__version__,
    )
    app.state.auditor = auditor

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Exception)
    async def unhandled_exception(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.url.path}")
        return JSONResponse(status_code=500, content={"ok": False, "error": str(exc)})

    @app.get("/", response_class=PlainTextResponse)
    def root():
        return ROOT_MESSAGE

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    @app.get("/metrics")
    def metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.post("/analyze")
    def analyze(body: AnalyzeBody, auditor: SecurityAuditor = Depends(get_auditor)):
        report = auditor.analyze(body.code, body.language)
        return {
            "ok": True,
            "language": report.language,
            "findings": [f.model_dump(mode='json') for f in report.findings],
            "narrative": report.narrative,
            "ai_feedback": report.narrative,
            "partial_failures": [f.model_dump(mode='json') for f in report.partial_failures],
            "raw": report.raw_results,
            "tools_run": report.tools_run,
            "duration_seconds": report.duration_seconds,
        }

    @app.post("/threat-model")
    def threat_model(body: ThreatModelRequest, auditor: SecurityAuditor = Depends(get_auditor)):
        result = auditor.threat_model(body)
        return {"ok": result.error is None, **result.model_dump()}

    @app.post("/api/fix-code")
    def fix_code(body: FixRequest, auditor: SecurityAuditor = Depends(get_auditor)):
        result = auditor.fix_code(body)
        return {"ok": result.error is None, **result.model_dump()}

    @app.post("/api/generate-report")
    def generate_report(body: ReportRequest, auditor: SecurityAuditor = Depends(get_auditor)):
        result = auditor.generate_report(body)
        return {"ok": result.error is None, **result.model_dump()}

    return app
