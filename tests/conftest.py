import base64
import io
import os

os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("CLERK_SECRET_KEY", "sk_test_resumate")
os.environ.setdefault("CLERK_WEBHOOK_SECRET", "whsec_" + base64.b64encode(b"resumate-webhook-secret-for-tests").decode())
os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017")
os.environ.setdefault("DB_NAME", "resumate_test")
os.environ.setdefault("CLOUDINARY_CLOUD_NAME", "resumate-test")
os.environ.setdefault("CLOUDINARY_API_KEY", "test-key")
os.environ.setdefault("CLOUDINARY_API_SECRET", "test-secret")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from docx import Document
from fastapi.testclient import TestClient
from PIL import Image
from reportlab.pdfgen import canvas

from resumate.models.resume import Feedback, ResumeRecord
from resumate.server import app
from resumate.services.storage import StorageError
from resumate.utils.auth import get_current_user_id
from resumate.utils.deps import get_oracle, get_repository, get_storage

SAMPLE_FEEDBACK = {
    "overallScore": 82,
    "ATS": {"score": 80, "tips": [{"type": "good", "tip": "Keyword-rich formatting"}]},
    "toneAndStyle": {"score": 85, "tips": [{"type": "good", "tip": "Confident", "explanation": "Active voice throughout."}]},
    "content": {"score": 78, "tips": [{"type": "improve", "tip": "Add metrics", "explanation": "Quantify the impact."}]},
    "structure": {"score": 90, "tips": []},
    "skills": {"score": 77, "tips": [{"type": "improve", "tip": "List Kubernetes", "explanation": "It is in the posting."}]},
}

SAMPLE_REWRITE = "# JANE DOE\njane@x.com | 555-1234\n\nEXPERIENCE\n**Engineer** | Acme | 2020-2022\n• Built X\n• Improved Y by 30%"


class InMemoryRepository:
    def __init__(self):
        self.records = {}
        self.saved = []

    async def upsert(self, owner_id, record):
        if record.owner_id != owner_id:
            raise ValueError("Record belongs to a different owner")
        self.records[(owner_id, record.id)] = record.model_copy(deep=True)
        self.saved.append((record.id, record.feedback))
        return record

    async def get(self, owner_id, resume_id):
        record = self.records.get((owner_id, resume_id))
        return record.model_copy(deep=True) if record else None

    async def list(self, owner_id):
        mine = [r for (owner, _), r in self.records.items() if owner == owner_id]
        return sorted(mine, key=lambda r: r.created_at, reverse=True)

    async def delete(self, owner_id, resume_id):
        return self.records.pop((owner_id, resume_id), None) is not None

    async def delete_all(self, owner_id):
        keys = [key for key in self.records if key[0] == owner_id]
        for key in keys:
            del self.records[key]
        return len(keys)


class InMemoryStorage:
    def __init__(self):
        self.files = {}
        self.uploads = []

    def put(self, data, owner_id, filename, resource_type="auto"):
        url = f"https://storage.test/{owner_id}/{len(self.files)}_{filename}"
        self.files[url] = data
        self.uploads.append((filename, resource_type))
        return url

    def get(self, url):
        if url not in self.files:
            raise StorageError("Failed to fetch file: 404")
        return self.files[url]


class FakeOracle:
    def __init__(self):
        self.feedback = SAMPLE_FEEDBACK
        self.rewrite = SAMPLE_REWRITE
        self.error = None
        self.score_calls = []
        self.rewrite_calls = []

    def score_resume(self, resume_text, job, image=None):
        self.score_calls.append((resume_text, job, image))
        if self.error is not None:
            raise self.error
        return Feedback.model_validate(self.feedback)

    def rewrite_resume(self, resume_text, job, current_feedback=None, image=None):
        self.rewrite_calls.append((resume_text, job, current_feedback, image))
        if self.error is not None:
            raise self.error
        return self.rewrite


def stored_record(repository, owner_id="user_alice", **overrides):
    fields = dict(
        id="r-1",
        owner_id=owner_id,
        company_name="Acme",
        job_title="Backend Engineer",
        job_description="Python and FastAPI",
        resume_url="https://storage.test/r-1.txt",
        image_url="https://storage.test/r-1.png",
        original_name="resume.pdf",
        content_type="text/plain",
    )
    fields.update(overrides)
    record = ResumeRecord(**fields)
    repository.records[(owner_id, record.id)] = record
    return record


def make_pdf(page_sizes=((300, 400),), label="Page"):
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=page_sizes[0])
    for number, (width, height) in enumerate(page_sizes, start=1):
        c.setPageSize((width, height))
        c.setFillColorRGB(0.1 * number, 0.2, 0.6)
        c.rect(20, 20, width / 2, height / 3, fill=1)
        c.setFillColorRGB(0, 0, 0)
        c.drawString(30, height - 40, f"{label} {number}")
        c.showPage()
    c.save()
    return buffer.getvalue()


def make_docx(paragraphs, table_rows=(), trailing=()):
    doc = Document()
    for text in paragraphs:
        doc.add_paragraph(text)
    if table_rows:
        table = doc.add_table(rows=len(table_rows), cols=len(table_rows[0]))
        for r, row in enumerate(table_rows):
            for c, text in enumerate(row):
                table.cell(r, c).text = text
    for text in trailing:
        doc.add_paragraph(text)
    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def make_image(size=(50, 30), fmt="PNG", color=(200, 30, 30)):
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def repository():
    return InMemoryRepository()


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def oracle():
    return FakeOracle()


@pytest.fixture
def current_user():
    return {"user_id": "user_alice"}


@pytest.fixture
def client(repository, storage, oracle, current_user):
    app.dependency_overrides[get_current_user_id] = lambda: current_user["user_id"]
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_oracle] = lambda: oracle
    yield TestClient(app)
    app.dependency_overrides.clear()
