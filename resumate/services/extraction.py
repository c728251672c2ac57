import io
import logging
import pdfplumber
from typing import List
from docx import Document
from docx.table import Table
from resumate.models.conversion import DocumentKind

logger = logging.getLogger("uvicorn.error")


def extract_text_from_pdf(file_bytes: bytes) -> str:
    text = ""
    try:
        with pdfplumber.open(io.BytesIO(file_bytes)) as pdf:
            for page in pdf.pages:
                page_text = page.extract_text()
                if page_text:
                    text += page_text + "\n"
    except Exception as e:
        logger.exception("Failed to extract text from PDF")
        raise ValueError(f"Failed to extract text from PDF: {e}")
    return text


def extract_text_from_docx(file_bytes: bytes) -> str:
    try:
        doc = Document(io.BytesIO(file_bytes))
    except Exception as e:
        logger.exception("Failed to open DOCX")
        raise ValueError(f"Failed to extract text from DOCX: {e}")
    return "\n".join(docx_block_lines(doc))


def docx_block_lines(container) -> List[str]:
    """Paragraph and table text in document order. Table cells are read row by row."""
    lines = []
    for block in container.iter_inner_content():
        if isinstance(block, Table):
            for row in block.rows:
                seen = set()
                for cell in row.cells:
                    # merged cells come back once per grid column
                    if cell._tc in seen:
                        continue
                    seen.add(cell._tc)
                    lines.extend(docx_block_lines(cell))
        else:
            lines.append(block.text)
    return lines


def extract_document_text(file_bytes: bytes, kind: DocumentKind) -> str:
    """Plain text for the scoring prompt. Images have none; the preview is sent instead."""
    if kind == DocumentKind.PAGINATED:
        text = extract_text_from_pdf(file_bytes)
    elif kind == DocumentKind.WORD_PROCESSOR:
        text = extract_text_from_docx(file_bytes)
    elif kind == DocumentKind.PLAIN_TEXT:
        text = file_bytes.decode("utf-8", errors="ignore")
    else:
        text = ""
    logger.info("Extracted %d characters from %s resume", len(text), kind.value)
    return text
