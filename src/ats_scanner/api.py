"""Request/response boundary for scan, optimize, analyze-job and cover-letter.

Requests and responses use camelCase keys. Input validation happens here,
before any pipeline stage runs.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from ats_scanner.errors import InputValidationError
from ats_scanner.models.base import Record
from ats_scanner.models.cover_letter import CoverLetterTemplate
from ats_scanner.models.optimization import OptimizationType
from ats_scanner.models.scan import FailureKind, StageResult
from ats_scanner.pipeline.context import ScanContext
from ats_scanner.pipeline.cover_letter import CoverLetterGenerator
from ats_scanner.pipeline.job_analyzer import JobAnalyzer
from ats_scanner.pipeline.optimizer import ResumeOptimizer
from ats_scanner.pipeline.orchestrator import Orchestrator

logger = logging.getLogger(__name__)

FIELD_LABELS = {
    "resume_text": "Resume text",
    "job_text": "Job description text",
}


class ScanRequest(Record):
    resume_text: str = ""
    job_text: str = ""
    file_name: str | None = None


class OptimizeRequest(Record):
    resume_text: str = ""
    job_text: str = ""
    optimization_type: OptimizationType = OptimizationType.FULL


class AnalyzeJobRequest(Record):
    job_text: str = ""


class CoverLetterRequest(Record):
    resume_text: str = ""
    job_text: str = ""
    template: CoverLetterTemplate = CoverLetterTemplate.PROFESSIONAL
    hiring_manager: str | None = None


class ApiResponse(Record):
    success: bool
    data: Any = None
    error: str | None = None
    status: int = 200

    @classmethod
    def ok(cls, data: Record) -> "ApiResponse":
        return cls(success=True, data=data.to_api(), status=200)

    @classmethod
    def error_response(cls, message: str, status: int) -> "ApiResponse":
        return cls(success=False, error=message, status=status)


def validate_texts(**fields: str | None) -> None:
    """Raise InputValidationError naming the first missing or blank field."""
    for name, value in fields.items():
        if value is None or not str(value).strip():
            label = FIELD_LABELS.get(name, name)
            raise InputValidationError(f"{label} is required and cannot be empty")


def _from_stage(result: StageResult) -> ApiResponse:
    if result.ok:
        return ApiResponse.ok(result.value)
    status = 400 if result.failure == FailureKind.VALIDATION and result.stage.startswith("parse_") else 500
    return ApiResponse.error_response(f"{result.stage} failed: {result.error}", status)


class ScannerAPI:
    """Entry points behind ``POST /scan``, ``/optimize``, ``/analyze-job`` and ``/cover-letter``."""

    def __init__(self, context: ScanContext):
        self.context = context
        self.orchestrator = Orchestrator(context)
        self.optimizer = ResumeOptimizer(self.orchestrator)
        self.job_analyzer = JobAnalyzer(self.orchestrator)
        self.cover_letters = CoverLetterGenerator(self.orchestrator)

    async def scan(self, request: ScanRequest | dict) -> ApiResponse:
        try:
            req = ScanRequest.model_validate(request)
            validate_texts(resume_text=req.resume_text, job_text=req.job_text)
        except (InputValidationError, ValidationError) as e:
            return ApiResponse.error_response(str(e), 400)
        return await self._run("scan", self.orchestrator.scan(req.resume_text, req.job_text, file_name=req.file_name))

    async def optimize(self, request: OptimizeRequest | dict) -> ApiResponse:
        try:
            req = OptimizeRequest.model_validate(request)
            validate_texts(resume_text=req.resume_text, job_text=req.job_text)
        except (InputValidationError, ValidationError) as e:
            return ApiResponse.error_response(str(e), 400)
        return await self._run(
            "optimize", self.optimizer.optimize(req.resume_text, req.job_text, req.optimization_type)
        )

    async def analyze_job(self, request: AnalyzeJobRequest | dict) -> ApiResponse:
        try:
            req = AnalyzeJobRequest.model_validate(request)
            validate_texts(job_text=req.job_text)
        except (InputValidationError, ValidationError) as e:
            return ApiResponse.error_response(str(e), 400)
        return await self._run("analyze-job", self.job_analyzer.analyze(req.job_text))

    async def cover_letter(self, request: CoverLetterRequest | dict) -> ApiResponse:
        try:
            req = CoverLetterRequest.model_validate(request)
            validate_texts(resume_text=req.resume_text, job_text=req.job_text)
        except (InputValidationError, ValidationError) as e:
            return ApiResponse.error_response(str(e), 400)
        return await self._run(
            "cover-letter",
            self.cover_letters.generate(
                req.resume_text, req.job_text, req.template, hiring_manager=req.hiring_manager
            ),
        )

    async def _run(self, name: str, call) -> ApiResponse:
        try:
            result = await call
        except Exception:
            logger.exception("Unhandled error in %s", name)
            return ApiResponse.error_response(f"Internal server error during {name}", 500)
        return _from_stage(result)
