"""
GlucoTrack - Extraction Tasks
Celery tasks for background glucose value extraction
"""

import logging
from typing import List
from app.celery_app import celery_app
from app.config import settings
from app.modules.extraction import extract_glucose_values
from app.schemas import ScanMode

logger = logging.getLogger(__name__)


@celery_app.task(name="app.tasks.extraction.extract_glucose", bind=True, max_retries=3)
def extract_glucose_task(self, text: str, mode: str = "strict") -> dict:
    """
    Extract glucose values from text asynchronously

    Args:
        text: Decoded report text
        mode: "strict" or "lenient"

    Returns:
        Extraction result as a JSON-compatible dictionary

    Raises:
        ValueError: Unknown mode; rejected without retrying
    """
    scan_mode = ScanMode(mode)

    try:
        logger.info(f"Starting {scan_mode.value} extraction ({len(text or '')} chars)")

        result = extract_glucose_values(text, mode=scan_mode, plausible_range=settings.plausible_range)

        logger.info(f"Extraction complete: {len(result.results)} values extracted")
        return result.model_dump(mode="json")

    except Exception as e:
        logger.error(f"Extraction failed: {e}", exc_info=True)
        # Retry with exponential backoff
        raise self.retry(exc=e, countdown=60 * (2 ** self.request.retries))


@celery_app.task(name="app.tasks.extraction.batch_extract")
def batch_extract_task(documents: List[dict]) -> List[dict]:
    """
    Batch extraction for multiple documents

    Args:
        documents: List of documents with text, optional mode and document_id

    Returns:
        List of extraction results, one per document
    """
    results = []
    for doc in documents:
        try:
            result = extract_glucose_values(
                doc["text"],
                mode=doc.get("mode", "strict"),
                plausible_range=settings.plausible_range
            )
            results.append({
                "document_id": doc.get("document_id"),
                "result": result.model_dump(mode="json"),
                "status": "success"
            })
        except (KeyError, ValueError) as e:
            logger.error(f"Batch extraction failed for doc {doc.get('document_id')}: {e}")
            results.append({
                "document_id": doc.get("document_id"),
                "error": str(e),
                "status": "failed"
            })

    return results
