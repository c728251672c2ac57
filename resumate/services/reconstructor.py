"""
Rebuilds a styled resume PDF from the free-form text the model returns.

There is no document model here. Each line is classified on its own by a small
state machine (have we seen the name yet, are we still in the contact block),
and the resulting actions are drawn top to bottom on A4 pages with reportlab.
"""
import io
import logging
import re
from enum import Enum
from typing import Iterable, List, NamedTuple, Tuple
from pydantic import BaseModel
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas
from resumate.models.conversion import derived_file_name

logger = logging.getLogger("uvicorn.error")

BULLET = "•"

# English only for now
NOISE_MARKERS = ("OPTIMIZED RESUME", "Optimized for:")
SECTION_KEYWORDS = ("EXPERIENCE", "EDUCATION", "SKILLS", "SUMMARY", "PROJECTS", "ACHIEVEMENTS")
HEADER_MAX_LENGTH = 50

HEADING_RE = re.compile(r"^#{1,6}\s")
PAGE_COUNTER_RE = re.compile(r"^\d+ of \d+$")
ROLE_RE = re.compile(r"^[^•]+•[^•]+\|")
GLYPH_BULLET_RE = re.compile(r"^\s*•\s*")
MARKDOWN_BULLET_RE = re.compile(r"^[*-]\s+")
CONTACT_CHARS = ("@", "+", "|")

HEADER_COLOR = (0, 51 / 255, 102 / 255)


class ReconstructorState(str, Enum):
    AWAITING_TITLE = "awaiting-title"
    IN_CONTACT_BLOCK = "in-contact-block"
    IN_BODY = "in-body"


class LineKind(str, Enum):
    NOISE = "noise"
    TITLE = "title"
    CONTACT = "contact"
    SECTION_HEADER = "section-header"
    ROLE = "role"
    BULLET = "bullet"
    EMPHASIS = "emphasis"
    BLANK = "blank"
    BODY = "body"


class RenderAction(NamedTuple):
    kind: LineKind
    text: str


def strip_markdown(text: str) -> str:
    text = re.sub(r"\[([^\]]+)\]\([^)]+\)", r"\1", text)
    text = re.sub(r"\*\*(.*?)\*\*", r"\1", text)
    text = re.sub(r"\*(.*?)\*", r"\1", text)
    text = re.sub(r"#{1,6}\s", "", text)
    text = re.sub(r"`([^`]+)`", r"\1", text)
    return text.strip()


def is_noise(line: str) -> bool:
    return (
        any(marker in line for marker in NOISE_MARKERS)
        or line.startswith("Page ")
        or PAGE_COUNTER_RE.match(line) is not None
    )


def is_section_header(line: str) -> bool:
    if HEADING_RE.match(line):
        return True
    upper = line.upper()
    return len(line) <= HEADER_MAX_LENGTH and any(keyword in upper for keyword in SECTION_KEYWORDS)


def classify(state: ReconstructorState, line: str) -> LineKind:
    """Kind of a trimmed line. The first matching rule wins."""
    if is_noise(line):
        return LineKind.NOISE
    if state == ReconstructorState.AWAITING_TITLE and line.startswith("#"):
        return LineKind.TITLE
    if state == ReconstructorState.IN_CONTACT_BLOCK and any(c in line for c in CONTACT_CHARS):
        return LineKind.CONTACT
    if is_section_header(line):
        return LineKind.SECTION_HEADER
    if ROLE_RE.match(line):
        return LineKind.ROLE
    if line.startswith(BULLET) or MARKDOWN_BULLET_RE.match(line):
        return LineKind.BULLET
    if "**" in line:
        return LineKind.EMPHASIS
    if not line:
        return LineKind.BLANK
    return LineKind.BODY


def render_text(kind: LineKind, line: str) -> str:
    if kind == LineKind.SECTION_HEADER:
        return strip_markdown(line).upper()
    if kind == LineKind.ROLE:
        return strip_markdown(line.replace(BULLET, ""))
    if kind == LineKind.BULLET:
        if line.startswith(BULLET):
            body = GLYPH_BULLET_RE.sub("", line)
        else:
            body = MARKDOWN_BULLET_RE.sub("", line)
        return f"{BULLET} {strip_markdown(body)}"
    if kind in (LineKind.NOISE, LineKind.BLANK):
        return line
    return strip_markdown(line)


def transition(state: ReconstructorState, raw_line: str) -> Tuple[ReconstructorState, RenderAction]:
    line = raw_line.strip()
    kind = classify(state, line)
    if kind == LineKind.NOISE:
        return state, RenderAction(kind, line)
    if kind in (LineKind.TITLE, LineKind.CONTACT):
        next_state = ReconstructorState.IN_CONTACT_BLOCK
    elif state == ReconstructorState.AWAITING_TITLE:
        next_state = ReconstructorState.AWAITING_TITLE
    else:
        next_state = ReconstructorState.IN_BODY
    return next_state, RenderAction(kind, render_text(kind, line))


def plan(text: str) -> List[RenderAction]:
    state = ReconstructorState.AWAITING_TITLE
    actions = []
    for line in text.split("\n"):
        state, action = transition(state, line)
        actions.append(action)
    return actions


class DrawnLine(NamedTuple):
    kind: LineKind
    text: str
    page: int
    x: float
    y: float
    font: str
    size: float
    centered: bool


class ReconstructedDocument(BaseModel):
    name: str
    data: bytes
    page_count: int
    lines: List[DrawnLine]


class ResumePdfRenderer:
    def __init__(self, pagesize=A4, margin: float = 15 * mm):
        self.page_width, self.page_height = pagesize
        self.margin = margin
        self.max_width = self.page_width - 2 * margin

    def render(self, actions: Iterable[RenderAction]) -> Tuple[bytes, int, List[DrawnLine]]:
        buffer = io.BytesIO()
        c = canvas.Canvas(buffer, pagesize=(self.page_width, self.page_height))
        drawn: List[DrawnLine] = []
        page = 1
        y = self.margin

        def draw(kind, text, x, font, size, centered=False):
            c.setFont(font, size)
            if centered:
                c.drawCentredString(x, self.page_height - y, text)
            else:
                c.drawString(x, self.page_height - y, text)
            drawn.append(DrawnLine(kind, text, page, x, y, font, size, centered))

        def draw_wrapped(kind, text, x, width, font, size, step):
            nonlocal y
            wrapped = simpleSplit(text, font, size, width) or [""]
            start = y
            for index, line in enumerate(wrapped):
                y = start + index * step
                draw(kind, line, x, font, size)
            y = start + len(wrapped) * step + 1 * mm

        for action in actions:
            if y > self.page_height - self.margin - 10 * mm:
                c.showPage()
                page += 1
                y = self.margin

            kind, text = action
            if kind == LineKind.NOISE:
                continue
            if kind == LineKind.TITLE:
                draw(kind, text, self.page_width / 2, "Helvetica-Bold", 16, centered=True)
                y += 7 * mm
            elif kind == LineKind.CONTACT:
                draw(kind, text, self.page_width / 2, "Helvetica", 9, centered=True)
                y += 4 * mm
            elif kind == LineKind.SECTION_HEADER:
                y += 3 * mm
                c.setFillColorRGB(*HEADER_COLOR)
                draw(kind, text, self.margin, "Helvetica-Bold", 11)
                y += 5 * mm
                c.setStrokeColorRGB(*HEADER_COLOR)
                c.setLineWidth(0.3 * mm)
                rule_y = self.page_height - (y - 2 * mm)
                c.line(self.margin, rule_y, self.page_width - self.margin, rule_y)
                y += 1 * mm
                c.setFillColorRGB(0, 0, 0)
                c.setStrokeColorRGB(0, 0, 0)
            elif kind in (LineKind.ROLE, LineKind.EMPHASIS):
                for line in simpleSplit(text, "Helvetica-Bold", 10.5, self.max_width) or [""]:
                    draw(kind, line, self.margin, "Helvetica-Bold", 10.5)
                    y += 5 * mm
            elif kind == LineKind.BULLET:
                draw_wrapped(kind, text, self.margin + 4 * mm, self.max_width - 5 * mm, "Helvetica", 9.5, 4 * mm)
            elif kind == LineKind.BLANK:
                y += 2 * mm
            else:
                draw_wrapped(kind, text, self.margin, self.max_width, "Helvetica", 10, 4.5 * mm)

        c.save()
        return buffer.getvalue(), page, drawn


class DocumentReconstructor:
    def __init__(self, renderer: ResumePdfRenderer = None):
        self.renderer = renderer or ResumePdfRenderer()

    def reconstruct(self, text: str, original_name: str) -> ReconstructedDocument:
        actions = plan(text)
        data, page_count, lines = self.renderer.render(actions)
        name = derived_file_name(original_name, "pdf", suffix="_optimized")
        logger.info("Rebuilt %s: %d line(s), %d page(s)", name, len(lines), page_count)
        return ReconstructedDocument(name=name, data=data, page_count=page_count, lines=lines)
