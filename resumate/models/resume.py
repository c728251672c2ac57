from beanie import Document
from pydantic import BaseModel, Field, field_validator
from pymongo import ASCENDING, DESCENDING, IndexModel
from typing import List, Literal, Optional
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def clamp_score(v):
    # The model sometimes answers 82.5 or 105
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return min(100, max(0, round(v)))
    return v


# ---------- Tip Model ----------
class Tip(BaseModel):
    type: Literal["good", "improve"]
    tip: str
    explanation: Optional[str] = None

# ---------- Section Model ----------
class Section(BaseModel):
    score: int = Field(ge=0, le=100)
    tips: List[Tip] = Field(default_factory=list)

    @field_validator("score", mode="before")
    def round_score(cls, v):
        return clamp_score(v)

# ---------- Feedback Model ----------
class Feedback(BaseModel):
    overallScore: int = Field(ge=0, le=100)
    ATS: Section
    toneAndStyle: Section
    content: Section
    structure: Section
    skills: Section

    @field_validator("overallScore", mode="before")
    def round_overall(cls, v):
        return clamp_score(v)


# ---------- Job Context ----------
class JobContext(BaseModel):
    job_title: str = "General Position"
    job_description: str = "General resume optimization"
    company_name: str = "Not Specified"

    @field_validator("job_title", "job_description", "company_name", mode="before")
    def blank_to_default(cls, v, info):
        if v is None or (isinstance(v, str) and not v.strip()):
            return cls.model_fields[info.field_name].default
        return v


# ---------- Resume Record ----------
class ResumeRecord(BaseModel):
    id: str
    owner_id: str
    company_name: str
    job_title: str
    job_description: str
    resume_url: str
    image_url: str
    original_name: str
    content_type: Optional[str] = None
    feedback: Optional[Feedback] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("created_at", "updated_at")
    def assume_utc(cls, v: datetime) -> datetime:
        # stored timestamps are UTC even when the driver hands them back naive
        return v.replace(tzinfo=timezone.utc) if v.tzinfo is None else v

    @property
    def job(self) -> JobContext:
        return JobContext(
            job_title=self.job_title,
            job_description=self.job_description,
            company_name=self.company_name,
        )


# ---------- Resume Document (MongoDB) ----------
class ResumeDocument(Document):
    resume_id: str
    owner_id: str
    company_name: str
    job_title: str
    job_description: str
    resume_url: str
    image_url: str
    original_name: str
    content_type: Optional[str] = None
    feedback: Optional[Feedback] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    class Settings:
        name = "resumes"
        indexes = [
            IndexModel([("owner_id", ASCENDING), ("resume_id", ASCENDING)], unique=True),
            IndexModel([("owner_id", ASCENDING), ("created_at", DESCENDING)]),
        ]

    @classmethod
    def from_record(cls, record: ResumeRecord) -> "ResumeDocument":
        data = record.model_dump(exclude={"id"})
        return cls(resume_id=record.id, **data)

    def to_record(self) -> ResumeRecord:
        data = self.model_dump(exclude={"id", "revision_id", "resume_id"})
        return ResumeRecord(id=self.resume_id, **data)


# ---------- Fallback Feedback ----------
def fallback_feedback(error: Optional[Exception] = None) -> Feedback:
    """Fixed feedback stored when scoring fails.

    With no error the model answered but not with usable JSON, which gets the
    75-point record; an actual call failure gets the 70-point record.
    """
    if error is None:
        return Feedback(
            overallScore=75,
            ATS=Section(score=75, tips=[
                Tip(type="improve", tip="AI analysis completed but response format was unexpected."),
            ]),
            toneAndStyle=Section(score=75, tips=[
                Tip(type="improve", tip="Professional Tone", explanation="Maintain professional language."),
            ]),
            content=Section(score=75, tips=[
                Tip(type="improve", tip="Content Quality", explanation="Include quantifiable achievements."),
            ]),
            structure=Section(score=75, tips=[
                Tip(type="improve", tip="Clear Structure", explanation="Use standard sections."),
            ]),
            skills=Section(score=75, tips=[
                Tip(type="improve", tip="Relevant Skills", explanation="List job-specific skills."),
            ]),
        )

    message = str(error)
    if "API key" in message or "GEMINI_API_KEY" in message:
        tip = "API Key Error: Please check GEMINI_API_KEY"
    else:
        tip = "AI analysis error. Resume saved. Try again later."
    return Feedback(
        overallScore=70,
        ATS=Section(score=70, tips=[Tip(type="improve", tip=tip)]),
        toneAndStyle=Section(score=70),
        content=Section(score=70),
        structure=Section(score=70),
        skills=Section(score=70),
    )
