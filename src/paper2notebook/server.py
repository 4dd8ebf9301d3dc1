"""FastAPI service exposing the paper → notebook pipeline."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, File, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import AppConfig
from .errors import PipelineError, ValidationError
from .io import extract_pdf_text
from .pipeline.orchestrator import PipelineOrchestrator
from .runtime import build_orchestrator

__all__ = ["create_app"]

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 30 * 1024 * 1024


def _error(status_code: int, error: str, detail: Optional[str] = None) -> JSONResponse:
    payload: dict[str, Any] = {"error": error}
    if detail is not None:
        payload["detail"] = detail
    return JSONResponse(status_code=status_code, content=payload)


def create_app(
    orchestrator: Optional[PipelineOrchestrator] = None,
    config: Optional[AppConfig] = None,
) -> FastAPI:
    config = config or AppConfig.from_env()
    pipeline = orchestrator or build_orchestrator(config)

    app = FastAPI(title="paper2notebook", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.server.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.orchestrator = pipeline

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "message": "paper2notebook API is running"}

    @app.post("/api/implement-paper")
    async def implement_paper(request: Request) -> Any:
        try:
            body = await request.json()
        except ValueError:
            body = None
        paper_text = body.get("paperText") if isinstance(body, dict) else None
        try:
            result = await pipeline.run(paper_text)
        except ValidationError as exc:
            return _error(400, str(exc))
        except PipelineError as exc:
            logger.error("Pipeline error: %s", exc)
            return _error(500, "Failed to generate implementation.", str(exc))
        except Exception as exc:
            logger.exception("Unexpected pipeline error")
            return _error(500, "Failed to generate implementation.", str(exc) or "Unknown error occurred")
        return {"success": True, "data": result.to_response()}

    @app.post("/api/extract-pdf")
    async def extract_pdf(pdf: UploadFile = File(...)) -> Any:
        filename = pdf.filename or ""
        if not filename.lower().endswith(".pdf") and pdf.content_type != "application/pdf":
            return _error(400, "Only PDF files are supported.")
        data = await pdf.read()
        if len(data) > MAX_UPLOAD_BYTES:
            return _error(400, "PDF exceeds the 30MB upload limit.")
        try:
            extracted = extract_pdf_text(data)
        except ValueError as exc:
            return _error(400, "Could not read the PDF.", str(exc))

        text = extracted.combined_text
        return {
            "success": True,
            "data": {
                "text": text,
                "numPages": extracted.page_count,
                "title": extracted.title or filename.rsplit(".", 1)[0],
                "characterCount": len(text),
            },
        }

    return app
