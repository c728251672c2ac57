import io
import logging
from typing import List, NamedTuple, Optional
import pdfplumber
from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError
from resumate.models.conversion import ConversionErrorKind, ConversionFailed

logger = logging.getLogger("uvicorn.error")

PDF_POINTS_PER_INCH = 72


class PdfPages:
    """An open PDF whose pages can be rendered one at a time."""

    def __init__(self, pdf, resolution: float):
        self._pdf = pdf
        self.resolution = resolution
        self.page_count = len(pdf.pages)

    def render(self, index: int) -> Image.Image:
        page = self._pdf.pages[index]
        page_image = page.to_image(resolution=self.resolution)
        try:
            return page_image.original.convert("RGB")
        finally:
            page_image.original.close()
            annotated = getattr(page_image, "annotated", None)
            if annotated is not None:
                annotated.close()
            page.close()

    def close(self):
        self._pdf.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class PdfPageDecoder:
    """Owns PDF decoding for a converter; create it once and close it on shutdown."""

    def __init__(self, scale: float = 4.0):
        if scale <= 0:
            raise ValueError("scale must be positive")
        self.scale = scale
        self._closed = False

    @property
    def resolution(self) -> float:
        return PDF_POINTS_PER_INCH * self.scale

    def open(self, data: bytes) -> PdfPages:
        if self._closed:
            raise RuntimeError("PdfPageDecoder is closed")
        pdf = pdfplumber.open(io.BytesIO(data))
        try:
            return PdfPages(pdf, self.resolution)
        except Exception:
            pdf.close()
            raise

    def close(self):
        self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def stack_pages(pages: List[Image.Image]) -> Image.Image:
    """One tall image: page 1's width, every page below the previous one."""
    width = pages[0].width
    height = sum(page.height for page in pages)
    combined = Image.new("RGB", (width, height), "white")
    offset = 0
    for page in pages:
        combined.paste(page, (0, offset))
        offset += page.height
    return combined


class PageRasterizer:
    def __init__(self, decoder: PdfPageDecoder):
        self.decoder = decoder

    def rasterize(self, data: bytes) -> Image.Image:
        try:
            document = self.decoder.open(data)
            page_count = document.page_count
        except Exception as e:
            raise ConversionFailed(ConversionErrorKind.DECODE_FAILURE, f"Failed to open PDF: {e}")

        pages: List[Image.Image] = []
        with document:
            if page_count < 1:
                raise ConversionFailed(ConversionErrorKind.DECODE_FAILURE, "PDF has no pages")
            try:
                for index in range(page_count):
                    try:
                        pages.append(document.render(index))
                    except Exception as e:
                        raise ConversionFailed(
                            ConversionErrorKind.RENDER_FAILURE,
                            f"Failed to render page {index + 1} of {page_count}: {e}",
                        )
                logger.info("Rendered %d PDF page(s) at %sx", page_count, self.decoder.scale)
                return stack_pages(pages)
            finally:
                for page in pages:
                    page.close()


class PlacedLine(NamedTuple):
    text: str
    y: int


class TextRasterizer:
    def __init__(
        self,
        width: int = 800,
        height: int = 1000,
        margin: int = 40,
        line_height: int = 24,
        font_size: int = 14,
        font: Optional[ImageFont.ImageFont] = None,
    ):
        self.width = width
        self.height = height
        self.margin = margin
        self.line_height = line_height
        self.font_size = font_size
        self.font = font or ImageFont.load_default(size=font_size)

    @property
    def max_width(self) -> int:
        return self.width - self.margin * 2

    @property
    def capacity(self) -> int:
        """How many lines fit before the bottom margin."""
        return max(0, (self.height - 2 * self.margin) // self.line_height)

    def measure(self, text: str) -> float:
        return self.font.getlength(text)

    def wrap(self, line: str) -> List[str]:
        lines = []
        current = ""
        for word in line.split(" "):
            candidate = f"{current} {word}" if current else word
            if self.measure(candidate) > self.max_width and current:
                lines.append(current)
                current = word
            else:
                current = candidate
        if current:
            lines.append(current)
        return lines

    def layout(self, text: str) -> List[PlacedLine]:
        placed = []
        y = self.margin
        bottom = self.height - self.margin
        for line in text.split("\n"):
            for wrapped in self.wrap(line.rstrip("\r")):
                # Anything past one canvas is dropped
                if y + self.line_height > bottom:
                    return placed
                placed.append(PlacedLine(wrapped, y))
                y += self.line_height
        return placed

    def rasterize(self, text: str) -> Image.Image:
        image = Image.new("RGB", (self.width, self.height), "white")
        try:
            draw = ImageDraw.Draw(image)
            for line in self.layout(text):
                draw.text((self.margin, line.y), line.text, fill="black", font=self.font)
        except Exception as e:
            image.close()
            raise ConversionFailed(ConversionErrorKind.RENDER_FAILURE, f"Failed to draw text: {e}")
        return image


def load_raster_image(data: bytes) -> Image.Image:
    try:
        with Image.open(io.BytesIO(data)) as source:
            source.load()
            mode = "RGBA" if "A" in source.getbands() or "transparency" in source.info else "RGB"
            return source.convert(mode)
    except (UnidentifiedImageError, OSError) as e:
        raise ConversionFailed(ConversionErrorKind.DECODE_FAILURE, f"Failed to load image: {e}")


def encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    try:
        image.save(buffer, format="PNG")
    except Exception as e:
        raise ConversionFailed(ConversionErrorKind.ENCODE_FAILURE, f"Failed to create PNG: {e}")
    return buffer.getvalue()
