"""
Upload -> preview image conversion.

Format selection trusts the declared MIME type, then the file extension.
Nothing inspects the bytes themselves, so a mislabeled file takes the wrong path
and fails there.
"""
import logging
import os
from typing import Optional
from resumate.models.conversion import (
    ConversionErrorKind,
    ConversionFailed,
    ConversionResult,
    DerivedFile,
    DocumentKind,
    UploadedDocument,
    derived_file_name,
)
from resumate.services.extraction import extract_text_from_docx
from resumate.services.rasterizer import (
    PageRasterizer,
    PdfPageDecoder,
    TextRasterizer,
    encode_png,
    load_raster_image,
)

logger = logging.getLogger("uvicorn.error")

DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

MIME_TYPES = {
    "application/pdf": DocumentKind.PAGINATED,
    "text/plain": DocumentKind.PLAIN_TEXT,
    DOCX_MIME_TYPE: DocumentKind.WORD_PROCESSOR,
}

EXTENSIONS = {
    ".pdf": DocumentKind.PAGINATED,
    ".png": DocumentKind.RASTER_IMAGE,
    ".jpg": DocumentKind.RASTER_IMAGE,
    ".jpeg": DocumentKind.RASTER_IMAGE,
    ".gif": DocumentKind.RASTER_IMAGE,
    ".bmp": DocumentKind.RASTER_IMAGE,
    ".webp": DocumentKind.RASTER_IMAGE,
    ".txt": DocumentKind.PLAIN_TEXT,
    ".docx": DocumentKind.WORD_PROCESSOR,
}


def sniff_format(content_type: Optional[str], filename: Optional[str]) -> Optional[DocumentKind]:
    mime = (content_type or "").split(";")[0].strip().lower()
    if mime in MIME_TYPES:
        return MIME_TYPES[mime]
    if mime.startswith("image/"):
        return DocumentKind.RASTER_IMAGE
    _, extension = os.path.splitext(filename or "")
    return EXTENSIONS.get(extension.lower())


class DocumentConverter:
    def __init__(self, decoder: PdfPageDecoder, text_rasterizer: Optional[TextRasterizer] = None):
        self.page_rasterizer = PageRasterizer(decoder)
        self.text_rasterizer = text_rasterizer or TextRasterizer()

    def _render(self, kind: DocumentKind, data: bytes):
        if kind == DocumentKind.PAGINATED:
            return self.page_rasterizer.rasterize(data)
        if kind == DocumentKind.RASTER_IMAGE:
            return load_raster_image(data)
        if kind == DocumentKind.PLAIN_TEXT:
            return self.text_rasterizer.rasterize(data.decode("utf-8", errors="ignore"))
        try:
            text = extract_text_from_docx(data)
        except ValueError as e:
            raise ConversionFailed(ConversionErrorKind.DECODE_FAILURE, str(e))
        return self.text_rasterizer.rasterize(text)

    def convert(self, document: UploadedDocument) -> ConversionResult:
        kind = sniff_format(document.content_type, document.filename)
        if kind is None:
            logger.warning("Unsupported upload %s (%s)", document.filename, document.content_type)
            return ConversionResult.failure(
                ConversionErrorKind.UNSUPPORTED_FORMAT,
                f"Unsupported file format: {document.content_type or document.filename}",
            )

        preview = None
        try:
            preview = self._render(kind, document.data)
            png = encode_png(preview)
        except ConversionFailed as e:
            logger.warning("Conversion of %s failed: %s", document.filename, e.message)
            if preview is not None:
                preview.close()
            return ConversionResult(error=e.to_error())
        except Exception as e:
            logger.exception("Unexpected conversion error for %s", document.filename)
            if preview is not None:
                preview.close()
            return ConversionResult.failure(ConversionErrorKind.RENDER_FAILURE, f"Failed to convert {kind.value}: {e}")

        name = derived_file_name(document.filename, "png")
        logger.info("Converted %s to %s (%d bytes)", document.filename, name, len(png))
        return ConversionResult.success(preview, DerivedFile(name=name, content_type="image/png", data=png))
