import io

import pdfplumber
import pytest
from reportlab.lib.units import mm

from conftest import SAMPLE_REWRITE
from resumate.services.reconstructor import (
    BULLET,
    DocumentReconstructor,
    LineKind,
    ReconstructorState,
    classify,
    plan,
    strip_markdown,
    transition,
)

AWAITING = ReconstructorState.AWAITING_TITLE
CONTACT = ReconstructorState.IN_CONTACT_BLOCK
BODY = ReconstructorState.IN_BODY


@pytest.mark.parametrize("raw,expected", [
    ("**Senior Engineer**", "Senior Engineer"),
    ("*Acme Corp*", "Acme Corp"),
    ("[GitHub](https://github.com/jane-doe-123)", "GitHub"),
    ("## Skills", "Skills"),
    ("Uses `kubectl` daily", "Uses kubectl daily"),
    ("  plain text  ", "plain text"),
])
def test_strip_markdown(raw, expected):
    assert strip_markdown(raw) == expected


def test_bold_only_line_reconstructs_to_plain_text():
    _, action = transition(BODY, "**Staff Engineer**")
    assert action == (LineKind.EMPHASIS, "Staff Engineer")
    assert "*" not in action.text


def test_end_to_end_plan():
    actions = plan(SAMPLE_REWRITE)

    assert actions == [
        (LineKind.TITLE, "JANE DOE"),
        (LineKind.CONTACT, "jane@x.com | 555-1234"),
        (LineKind.BLANK, ""),
        (LineKind.SECTION_HEADER, "EXPERIENCE"),
        (LineKind.EMPHASIS, "Engineer | Acme | 2020-2022"),
        (LineKind.BULLET, f"{BULLET} Built X"),
        (LineKind.BULLET, f"{BULLET} Improved Y by 30%"),
    ]


def test_end_to_end_rendering():
    document = DocumentReconstructor().reconstruct(SAMPLE_REWRITE, "resume.pdf")
    renderer = DocumentReconstructor().renderer
    lines = document.lines

    title, contact, header, role, first, second = lines
    assert (title.text, title.font, title.centered) == ("JANE DOE", "Helvetica-Bold", True)
    assert title.size == 16
    assert (contact.text, contact.centered, contact.size) == ("jane@x.com | 555-1234", True, 9)
    assert (header.text, header.font) == ("EXPERIENCE", "Helvetica-Bold")
    assert (role.text, role.font) == ("Engineer | Acme | 2020-2022", "Helvetica-Bold")
    assert [first.text, second.text] == [f"{BULLET} Built X", f"{BULLET} Improved Y by 30%"]
    assert first.x == second.x == pytest.approx(renderer.margin + 4 * mm)
    assert first.y < second.y
    assert [line.y for line in lines] == sorted(line.y for line in lines)

    assert document.name == "resume_optimized.pdf"
    assert document.page_count == 1
    with pdfplumber.open(io.BytesIO(document.data)) as pdf:
        text = pdf.pages[0].extract_text()
    assert "JANE DOE" in text
    assert "EXPERIENCE" in text
    assert "Improved Y by 30%" in text


def test_section_header_detection_is_case_insensitive():
    assert classify(BODY, "Education") == LineKind.SECTION_HEADER
    _, action = transition(BODY, "Education")
    assert action.text == "EDUCATION"


def test_long_lines_with_keywords_are_body_text():
    line = ("Completed continuing education in cloud platforms " + "x" * 60)[:60]
    assert len(line) == 60
    assert classify(BODY, line) == LineKind.BODY


def test_header_length_limit_is_fifty_characters():
    short = "Professional Experience and Selected Projects 2024"
    assert len(short) == 50
    assert classify(BODY, short) == LineKind.SECTION_HEADER
    assert classify(BODY, short + "s") == LineKind.BODY


def test_heading_marker_is_a_header_at_any_length():
    line = "## " + "Volunteer work " * 5
    assert classify(BODY, line) == LineKind.SECTION_HEADER


@pytest.mark.parametrize("line", ["OPTIMIZED RESUME", "Optimized for: Acme", "Page 2", "1 of 2"])
def test_noise_lines_are_skipped_without_state_change(line):
    for state in ReconstructorState:
        next_state, action = transition(state, line)
        assert action.kind == LineKind.NOISE
        assert next_state == state


def test_noise_lines_draw_nothing():
    document = DocumentReconstructor().reconstruct("OPTIMIZED RESUME\n# JANE DOE\nPage 1 of 2\n3 of 4", "cv.txt")
    assert [line.text for line in document.lines] == ["JANE DOE"]


def test_title_is_captured_once():
    state, action = transition(AWAITING, "# Jane Doe")
    assert (state, action.kind) == (CONTACT, LineKind.TITLE)

    state, action = transition(BODY, "# Projects")
    assert action == (LineKind.SECTION_HEADER, "PROJECTS")


def test_hash_without_space_is_only_a_title_before_the_name():
    assert classify(AWAITING, "#JaneDoe") == LineKind.TITLE
    assert classify(BODY, "#JaneDoe") == LineKind.BODY


def test_contact_block_lasts_until_a_non_contact_line():
    state, action = transition(CONTACT, "+1 555 0100")
    assert (state, action.kind) == (CONTACT, LineKind.CONTACT)

    state, action = transition(state, "San Francisco, CA")
    assert (state, action.kind) == (BODY, LineKind.BODY)

    state, action = transition(state, "jane@x.com")
    assert (state, action.kind) == (BODY, LineKind.BODY)


def test_contact_lines_need_a_title_first():
    state, action = transition(AWAITING, "jane@x.com | 555-1234")
    assert (state, action.kind) == (AWAITING, LineKind.BODY)


def test_section_header_ends_the_contact_block():
    state, action = transition(CONTACT, "SUMMARY")
    assert (state, action.kind) == (BODY, LineKind.SECTION_HEADER)


def test_role_line_with_bullet_separator():
    state, action = transition(BODY, "Engineer • Acme | 2020 - 2022")
    assert action.kind == LineKind.ROLE
    assert BULLET not in action.text
    assert state == BODY


@pytest.mark.parametrize("line,expected", [
    ("• Built X", f"{BULLET} Built X"),
    ("•Built X", f"{BULLET} Built X"),
    ("- Led a team of 5", f"{BULLET} Led a team of 5"),
    ("* Shipped **v2** API", f"{BULLET} Shipped v2 API"),
])
def test_bullets_are_normalized(line, expected):
    _, action = transition(BODY, line)
    assert action == (LineKind.BULLET, expected)


def test_bold_markup_at_line_start_is_not_a_bullet():
    assert classify(BODY, "**Engineer** | Acme") == LineKind.EMPHASIS


def test_blank_line_ends_the_contact_block():
    state, action = transition(CONTACT, "   ")
    assert (state, action.kind) == (BODY, LineKind.BLANK)


def test_long_text_paginates():
    text = "# JANE DOE\n" + "\n".join(f"Delivered project number {n} on time" for n in range(200))

    document = DocumentReconstructor().reconstruct(text, "resume.docx")
    renderer = DocumentReconstructor().renderer

    assert document.page_count > 1
    assert document.name == "resume_optimized.pdf"
    assert max(line.page for line in document.lines) == document.page_count
    assert all(line.y <= renderer.page_height - renderer.margin for line in document.lines)
    second_page = [line for line in document.lines if line.page == 2]
    assert second_page[0].y == pytest.approx(renderer.margin)
    with pdfplumber.open(io.BytesIO(document.data)) as pdf:
        assert len(pdf.pages) == document.page_count


def test_body_text_wraps_to_page_width():
    document = DocumentReconstructor().reconstruct("word " * 200, "resume.pdf")
    assert len(document.lines) > 1
    assert all(line.kind == LineKind.BODY for line in document.lines)
