import os
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, model_validator


# ---------- Document Kinds ----------
class DocumentKind(str, Enum):
    PAGINATED = "paginated-document"
    RASTER_IMAGE = "raster-image"
    PLAIN_TEXT = "plain-text"
    WORD_PROCESSOR = "word-processor-document"


# ---------- Conversion Errors ----------
class ConversionErrorKind(str, Enum):
    UNSUPPORTED_FORMAT = "unsupported-format"
    DECODE_FAILURE = "decode-failure"
    RENDER_FAILURE = "render-failure"
    ENCODE_FAILURE = "encode-failure"


class ConversionError(BaseModel):
    kind: ConversionErrorKind
    message: str


class ConversionFailed(Exception):
    """Raised inside a conversion strategy, turned into a ConversionError at the boundary."""

    def __init__(self, kind: ConversionErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def to_error(self) -> ConversionError:
        return ConversionError(kind=self.kind, message=self.message)


# ---------- Files ----------
class UploadedDocument(BaseModel):
    data: bytes
    filename: str
    content_type: Optional[str] = None


class DerivedFile(BaseModel):
    name: str
    content_type: str
    data: bytes


def derived_file_name(original_name: str, extension: str, suffix: str = "") -> str:
    """`resume.docx` -> `resume.png`, or `resume_optimized.pdf` with a suffix."""
    base, _ = os.path.splitext(os.path.basename(original_name or ""))
    return f"{base or 'resume'}{suffix}.{extension.lstrip('.')}"


# ---------- Conversion Result ----------
class ConversionResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    preview: Optional[Any] = None
    file: Optional[DerivedFile] = None
    error: Optional[ConversionError] = None

    @model_validator(mode="after")
    def exactly_one_outcome(self):
        if (self.file is None) == (self.error is None):
            raise ValueError("ConversionResult needs exactly one of file or error")
        return self

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, preview, file: DerivedFile) -> "ConversionResult":
        return cls(preview=preview, file=file)

    @classmethod
    def failure(cls, kind: ConversionErrorKind, message: str) -> "ConversionResult":
        return cls(error=ConversionError(kind=kind, message=message))
