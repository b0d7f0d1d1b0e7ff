"""
Document text extraction.

Turns an uploaded document into the plain text that gets appended to a
chat's content:

    Upload bytes → Extractor (by extension) → Plain text

Supported formats: PDF (PyMuPDF), DOCX (python-docx), PPTX (python-pptx)
and plain UTF-8 text. The text is not chunked or otherwise interpreted.
"""

import io
import logging
import os
from typing import List

import fitz  # PyMuPDF
from docx import Document as DocxDocument
from pptx import Presentation


logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ('.pdf', '.docx', '.pptx', '.txt')


class DocumentProcessingError(Exception):
    """Raised when text cannot be extracted (corrupted file, unsupported format, etc.)."""
    pass


def extract_text_from_pdf(data: bytes) -> str:
    """
    Extract text from every page of a PDF, in page order.

    Raises:
        DocumentProcessingError: If the file cannot be opened or is corrupted.
    """
    try:
        pdf_doc = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        raise DocumentProcessingError(f"Failed to open PDF: {e}") from e

    try:
        pages = [page.get_text() for page in pdf_doc]
    except Exception as e:
        raise DocumentProcessingError(f"Failed to extract text from PDF: {e}") from e
    finally:
        pdf_doc.close()

    logger.debug(f"Extracted {len(pages)} PDF pages")
    return "\n".join(pages)


def extract_text_from_docx(data: bytes) -> str:
    """
    Extract paragraph and table text from a DOCX file.

    Raises:
        DocumentProcessingError: If the file cannot be opened or is corrupted.
    """
    try:
        doc = DocxDocument(io.BytesIO(data))

        paragraphs = [para.text for para in doc.paragraphs if para.text.strip()]

        for table in doc.tables:
            for row in table.rows:
                for cell in row.cells:
                    if cell.text.strip():
                        paragraphs.append(cell.text)

        return '\n'.join(paragraphs)

    except Exception as e:
        error_msg = f"Failed to extract text from DOCX: {str(e)}"
        logger.error(error_msg)
        raise DocumentProcessingError(error_msg) from e


def _extract_text_from_shape(shape) -> List[str]:
    """
    Recursively extract text from a shape, handling tables and nested groups.

    Args:
        shape: A PowerPoint shape object.

    Returns:
        List of text strings extracted from the shape.
    """
    text_parts = []

    if getattr(shape, "has_text_frame", False) and shape.text_frame:
        for paragraph in shape.text_frame.paragraphs:
            para_text = paragraph.text.strip()
            if para_text:
                text_parts.append(para_text)

    if getattr(shape, "has_table", False) and shape.has_table:
        for row in shape.table.rows:
            for cell in row.cells:
                cell_text = cell.text.strip()
                if cell_text:
                    text_parts.append(cell_text)

    # Group shapes
    if hasattr(shape, "shapes"):
        for sub_shape in shape.shapes:
            text_parts.extend(_extract_text_from_shape(sub_shape))

    return text_parts


def extract_text_from_pptx(data: bytes) -> str:
    """
    Extract text from all slides of a PPTX file, one block per slide.

    Raises:
        DocumentProcessingError: If the file cannot be opened or is corrupted.
    """
    try:
        prs = Presentation(io.BytesIO(data))
    except Exception as e:
        error_msg = f"Failed to open PPTX: {str(e)}"
        logger.error(error_msg)
        raise DocumentProcessingError(error_msg) from e

    slides = []
    for slide_num, slide in enumerate(prs.slides, start=1):
        slide_text_parts = []
        for shape_idx, shape in enumerate(slide.shapes):
            try:
                slide_text_parts.extend(_extract_text_from_shape(shape))
            except Exception as e:
                # One broken shape shouldn't stop the whole slide
                logger.warning(
                    f"Error extracting text from shape {shape_idx} on slide {slide_num}: {e}"
                )

        if slide_text_parts:
            slides.append('\n'.join(slide_text_parts))

    logger.info(f"PPTX extraction complete: {len(slides)} slides with text")
    return '\n\n'.join(slides)


def extract_text_from_plain(data: bytes) -> str:
    try:
        return data.decode('utf-8-sig')
    except UnicodeDecodeError as e:
        raise DocumentProcessingError(f"Text file is not valid UTF-8: {e}") from e


_EXTRACTORS = {
    '.pdf': extract_text_from_pdf,
    '.docx': extract_text_from_docx,
    '.pptx': extract_text_from_pptx,
    '.txt': extract_text_from_plain,
}


def extract_document_text(file_name: str, data: bytes) -> str:
    """
    Extract plain text from an uploaded document.

    This is the main entry point for the ingestion pipeline.

    Args:
        file_name: Original file name; its extension selects the extractor.
        data: Raw file bytes.

    Returns:
        The extracted text.

    Raises:
        DocumentProcessingError: Unsupported format, unreadable file, or a
            document that contains no extractable text.
    """
    file_extension = os.path.splitext(file_name)[1].lower()
    extractor = _EXTRACTORS.get(file_extension)

    if extractor is None:
        supported = ', '.join(SUPPORTED_EXTENSIONS)
        raise DocumentProcessingError(
            f"Unsupported file format: {file_extension or '(none)'}. Supported: {supported}"
        )

    logger.info(f"Extracting text from {file_name} ({len(data)} bytes)")
    text = extractor(data)

    if not text.strip():
        raise DocumentProcessingError(f"No extractable text found in {file_name}")

    return text
