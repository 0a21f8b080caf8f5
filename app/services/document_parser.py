"""
GlucoTrack - Document Parsing Service
Decodes uploaded PDF and plain-text reports into line-delimited text
"""

import logging
import io
from typing import Optional, Dict, Any
from pathlib import Path

# PDF parsing
import fitz  # PyMuPDF

logger = logging.getLogger(__name__)


class DocumentParseError(Exception):
    """Raised when a document cannot be decoded to text"""


# =============================================================================
# Document Parser Service
# =============================================================================

class DocumentParserService:
    """Service for decoding report files to plain text"""

    def __init__(self):
        logger.info("Document parser service initialized")

    def parse_document(
        self,
        file_content: bytes,
        filename: str,
        content_type: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Parse document and extract text

        Args:
            file_content: Raw file bytes
            filename: Original filename
            content_type: MIME type (optional)

        Returns:
            Dictionary with extracted text and metadata
        """
        file_ext = Path(filename).suffix.lower()
        logger.info(f"Parsing document: {filename} (type: {file_ext or content_type})")

        if file_ext == '.pdf' or content_type == 'application/pdf':
            return self.parse_pdf(file_content, filename)

        if file_ext != '.txt' and content_type != 'text/plain':
            logger.warning(f"Unknown file type {file_ext}, attempting text parsing")
        return self.parse_text(file_content, filename)

    # =========================================================================
    # PDF Parsing
    # =========================================================================

    def parse_pdf(self, file_content: bytes, filename: str) -> Dict[str, Any]:
        """
        Parse PDF document and extract text

        Args:
            file_content: PDF file bytes
            filename: Filename

        Returns:
            Parsed document with text and metadata

        Raises:
            DocumentParseError: If the bytes are not a readable PDF
        """
        try:
            pdf_document = fitz.open(stream=io.BytesIO(file_content), filetype="pdf")
        except Exception as e:
            logger.error(f"PDF parsing failed for {filename}: {e}")
            raise DocumentParseError(f"Could not open PDF: {e}") from e

        try:
            page_texts = []
            pages_data = []

            for page_num in range(len(pdf_document)):
                page_text = pdf_document[page_num].get_text()
                page_texts.append(page_text)
                pages_data.append({
                    "page_number": page_num + 1,
                    "char_count": len(page_text),
                    "line_count": len(page_text.splitlines())
                })

            metadata = pdf_document.metadata or {}
        finally:
            pdf_document.close()

        full_text = "\n\n".join(page_texts).strip()
        logger.info(f"✓ PDF parsed: {filename} ({len(pages_data)} pages, {len(full_text)} chars)")

        return {
            "text": full_text,
            "filename": filename,
            "format": "pdf",
            "page_count": len(pages_data),
            "pages": pages_data,
            "metadata": {
                "title": metadata.get("title"),
                "author": metadata.get("author"),
                "producer": metadata.get("producer"),
            },
            "char_count": len(full_text)
        }

    # =========================================================================
    # Text Parsing
    # =========================================================================

    def parse_text(self, file_content: bytes, filename: str) -> Dict[str, Any]:
        """Parse plain text file, falling back to latin-1"""
        try:
            text = file_content.decode('utf-8')
        except UnicodeDecodeError:
            text = file_content.decode('latin-1', errors='ignore')

        logger.info(f"✓ Text parsed: {filename} ({len(text)} chars)")

        return {
            "text": text.strip(),
            "filename": filename,
            "format": "text",
            "page_count": 0,
            "char_count": len(text),
            "line_count": len(text.splitlines())
        }


# =============================================================================
# Global Parser Instance
# =============================================================================

_document_parser: Optional[DocumentParserService] = None


def get_document_parser() -> DocumentParserService:
    """Get or create document parser instance"""
    global _document_parser
    if _document_parser is None:
        _document_parser = DocumentParserService()
    return _document_parser


def parse_file(
    file_content: bytes,
    filename: str,
    content_type: Optional[str] = None
) -> Dict[str, Any]:
    """Parse document file and extract text"""
    parser = get_document_parser()
    return parser.parse_document(file_content, filename, content_type)
