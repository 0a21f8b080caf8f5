"""
GlucoTrack - Extraction API Routes
Glucose extraction from pasted text and uploaded PDF reports
"""

import logging
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.models import Report
from app.modules.extraction import ResultAggregator, extract_glucose_values
from app.routes.readings import add_reading
from app.schemas import (
    ExportFormat, ExtractedValue, ExtractionResult, GlucoseReadingCreate,
    GlucoseReadingResponse, PDFProcessingResponse, PromoteRequest,
    ReportDetail, ReportSummary, ScanMode, TextExtractionRequest
)
from app.services.cache_service import get_cache_service
from app.services.document_parser import DocumentParseError, parse_file
from app.services.export_service import extraction_to_csv, extraction_to_json

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Extraction"])

PROMOTED_CONTEXT_CHARS = 100


def _check_text_size(text: str) -> None:
    if len(text) > settings.extraction_max_text_chars:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Text exceeds {settings.extraction_max_text_chars} characters"
        )


# =============================================================================
# Text Extraction
# =============================================================================

@router.post("/process-text", response_model=ExtractionResult)
async def process_text(request: TextExtractionRequest):
    """
    Extract glucose values from pasted text

    Uses the configured text scanning mode unless the request names one.
    Results are served from the Redis cache when available.
    """
    if not request.text or not request.text.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Text is required"
        )
    _check_text_size(request.text)

    mode = request.mode or ScanMode(settings.extraction_text_mode)
    cache = get_cache_service()
    key = cache.extraction_key(request.text, mode.value, settings.plausible_range)

    cached = cache.get_cached_extraction(key)
    if cached is not None:
        return cached

    try:
        result = extract_glucose_values(
            request.text,
            mode=mode,
            plausible_range=settings.plausible_range
        )
    except Exception as e:
        logger.error(f"Text processing error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to process text: {str(e)}"
        )

    cache.cache_extraction(key, result)
    return result


# =============================================================================
# PDF Extraction
# =============================================================================

@router.post("/process-pdf", response_model=PDFProcessingResponse)
async def process_pdf(pdf: UploadFile = File(...), db: Session = Depends(get_db)):
    """Decode an uploaded PDF report, extract glucose values and store the report"""
    filename = pdf.filename or "report.pdf"
    if pdf.content_type != "application/pdf" and not filename.lower().endswith(".pdf"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only PDF files are allowed!"
        )

    content = await pdf.read()
    if len(content) > settings.upload_max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Maximum size is {settings.upload_max_bytes // (1024 * 1024)}MB."
        )

    try:
        parsed = parse_file(content, filename, "application/pdf")
    except DocumentParseError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Failed to process PDF: {str(e)}"
        )

    text = parsed["text"]
    _check_text_size(text)

    mode = ScanMode(settings.extraction_pdf_mode)
    result = extract_glucose_values(text, mode=mode, plausible_range=settings.plausible_range)

    report = Report(
        filename=filename,
        extracted_text=text,
        extracted_values=[v.model_dump(mode="json") for v in result.results],
        scan_mode=mode.value,
        value_count=len(result.results)
    )
    db.add(report)
    db.commit()
    db.refresh(report)

    logger.info(f"Processed PDF {filename}: {len(result.results)} glucose values, report {report.id}")

    return PDFProcessingResponse(
        report_id=report.id,
        filename=filename,
        page_count=parsed.get("page_count", 0),
        extracted_text=text,
        glucose_values=result.results,
        summary=result.summary
    )


# =============================================================================
# Reports
# =============================================================================

def _get_report(db: Session, report_id: int) -> Report:
    report = db.get(Report, report_id)
    if report is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Report {report_id} not found"
        )
    return report


@router.get("/reports", response_model=List[ReportSummary])
async def list_reports(db: Session = Depends(get_db)):
    """Stored reports, newest first"""
    return db.scalars(select(Report).order_by(Report.id.desc())).all()


@router.get("/reports/{report_id}", response_model=ReportDetail)
async def get_report(report_id: int, db: Session = Depends(get_db)):
    """One stored report with its text and extracted values"""
    return _get_report(db, report_id)


@router.get("/reports/{report_id}/export")
async def export_report(
    report_id: int,
    format: ExportFormat = Query("csv", description="csv or json"),
    db: Session = Depends(get_db)
):
    """Download a report's extracted values as CSV or JSON"""
    report = _get_report(db, report_id)
    values = [ExtractedValue(**v) for v in report.extracted_values]

    if format == "json":
        summary = ResultAggregator.summarize(values)
        return Response(
            content=extraction_to_json(values, summary),
            media_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="fbs_data_{report_id}.json"'}
        )

    return Response(
        content=extraction_to_csv(values),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="fbs_data_{report_id}.csv"'}
    )


# =============================================================================
# Promotion
# =============================================================================

@router.post(
    "/extractions/promote",
    response_model=GlucoseReadingResponse,
    status_code=status.HTTP_201_CREATED
)
async def promote_extraction(request: PromoteRequest, db: Session = Depends(get_db)):
    """Store an extracted value as a glucose reading"""
    notes = request.notes
    if notes is None:
        notes = f"Extracted from: {request.context[:PROMOTED_CONTEXT_CHARS]}..."

    try:
        reading = GlucoseReadingCreate(
            glucose_level=request.value,
            unit=request.unit,
            meal_tag=request.meal_tag,
            notes=notes,
            timestamp=request.timestamp or datetime.now()
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid reading: {e}"
        )

    return add_reading(db, reading)
