"""Website analysis API: FastAPI app and endpoints for the lead widget."""

from concurrent.futures import TimeoutError as FutureTimeoutError

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from errors import LeadNotFoundError, PipelineError
from logger import get_logger
from schemas import (
    EMAIL_PATTERN,
    INVALID_EMAIL_MESSAGE,
    REQUIRED_FIELDS_MESSAGE,
    ErrorResponse,
    ProcessRequest,
    ProcessResponse,
    Scores,
    StartAnalysisRequest,
    StartAnalysisResponse,
    StatusResponse,
)
from services import Services, build_services
from status import project_status

logger = get_logger(__name__)

START_MESSAGE = "Analyse gestartet! Sie können den Fortschritt verfolgen."


def _error(status_code: int, error: str, message: str | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def create_app(services: Services | None = None) -> FastAPI:
    services = services or build_services()

    app = FastAPI(
        title="Website Analysis API",
        description="Lead capture and automated website analysis reports",
        version="0.1.0",
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("Rejected request to %s: %s", request.url.path, exc.errors())
        return _error(400, REQUIRED_FIELDS_MESSAGE)

    @app.on_event("startup")
    def startup() -> None:
        services.database.init_db()

    @app.on_event("shutdown")
    def shutdown() -> None:
        services.runner.shutdown(wait=False)

    @app.post("/api/analyze/start", response_model=StartAnalysisResponse)
    def start_analysis(body: StartAnalysisRequest):
        """Register (or reset) the lead at `queued`. Processing is triggered separately."""
        if not body.is_complete():
            return _error(400, REQUIRED_FIELDS_MESSAGE)

        request = body.to_analysis_request()
        if not EMAIL_PATTERN.match(request.email):
            return _error(400, INVALID_EMAIL_MESSAGE)

        lead_id = services.database.upsert_lead(request.first_name, request.email, request.website_url)
        logger.info("[%s] Lead queued for %s", lead_id, request.website_url)

        if services.settings.auto_process:
            services.runner.submit(lead_id, services.pipeline.run, lead_id)

        return StartAnalysisResponse(success=True, lead_id=lead_id, message=START_MESSAGE)

    @app.post("/api/analyze/process", response_model=ProcessResponse)
    def process_analysis(body: ProcessRequest):
        """
        Run the pipeline for a lead and wait for the result. A run already in
        flight for the same lead is joined instead of started twice.
        """
        if not body.lead_id:
            return _error(400, "Lead ID required")
        if services.database.get_lead(body.lead_id) is None:
            return _error(404, "Lead not found")

        future = services.runner.submit(body.lead_id, services.pipeline.run, body.lead_id)
        try:
            result = future.result(timeout=services.settings.process_timeout_seconds)
        except FutureTimeoutError:
            logger.warning("[%s] Process request timed out, analysis continues in background", body.lead_id)
            return _error(504, "Analyse dauert länger als erwartet", "Die Analyse läuft im Hintergrund weiter.")
        except LeadNotFoundError:
            return _error(404, "Lead not found")
        except PipelineError as exc:
            return _error(500, "Analyse fehlgeschlagen", str(exc))

        return ProcessResponse(
            success=True,
            analysis_id=result["analysis_id"],
            scores=Scores(**result["scores"]),
            has_data_for_seo=result["has_dataforseo"],
        )

    @app.get("/api/analyze/{lead_id}/status", response_model=StatusResponse)
    def analysis_status(lead_id: str):
        """Progress view for the widget. Scores are included once completed."""
        lead = services.database.get_lead(lead_id)
        if lead is None:
            return _error(404, "Not found")

        view = project_status(lead["status"])
        scores = None
        if view["is_completed"]:
            latest = services.database.get_latest_scores(lead_id)
            scores = Scores(**latest) if latest else None

        return StatusResponse(
            lead_id=lead_id,
            status=view["status"],
            step=view["step"],
            total_steps=view["total_steps"],
            label=view["label"],
            is_completed=view["is_completed"],
            is_failed=view["is_failed"],
            scores=scores,
            website_url=lead["website_url"],
            first_name=lead["first_name"],
        )

    @app.get("/health")
    def health() -> dict:
        """Health check for deployment."""
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
