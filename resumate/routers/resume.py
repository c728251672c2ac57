from fastapi import APIRouter, Depends, HTTPException, File, UploadFile, Form, Request, Response
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel
from typing import Optional
import uuid, logging
from urllib.parse import quote

from resumate.models.conversion import ConversionErrorKind, DocumentKind, UploadedDocument
from resumate.models.resume import JobContext, ResumeRecord, fallback_feedback
from resumate.services.config import settings
from resumate.services.converter import DocumentConverter, sniff_format
from resumate.services.extraction import extract_document_text
from resumate.services.generator import OracleResponseError
from resumate.services.reconstructor import DocumentReconstructor
from resumate.services.repository import ResumeRepository
from resumate.services.storage import CloudinaryStorage
from resumate.utils.auth import get_current_user_id
from resumate.utils.deps import get_converter, get_oracle, get_reconstructor, get_repository, get_storage
from resumate.utils.limiter import limiter

logger = logging.getLogger("uvicorn.error")

router = APIRouter(
    prefix="/resume",
    tags=["Resume Analysis"]
)

CONVERSION_STATUS = {
    ConversionErrorKind.UNSUPPORTED_FORMAT: 415,
    ConversionErrorKind.DECODE_FAILURE: 422,
    ConversionErrorKind.RENDER_FAILURE: 422,
    ConversionErrorKind.ENCODE_FAILURE: 500,
}


class OptimizeRequest(BaseModel):
    resumeId: Optional[str] = None
    optimizedContent: Optional[str] = None


def content_disposition(disposition: str, filename: str) -> str:
    """Header value safe for latin-1, with the real name in RFC 5987 form."""
    fallback = filename.encode("ascii", "replace").decode("ascii").replace("?", "_").replace("\"", "_")
    return f"{disposition}; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


async def read_upload(resume: UploadFile) -> UploadedDocument:
    resume_bytes = await resume.read()
    logger.info(f"Resume file read: {len(resume_bytes)} bytes, content_type={resume.content_type}, filename={resume.filename}")
    if not resume_bytes:
        raise HTTPException(status_code=400, detail="No file provided")
    if len(resume_bytes) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File too large")
    return UploadedDocument(
        data=resume_bytes,
        filename=resume.filename or "resume",
        content_type=resume.content_type,
    )


async def convert_upload(converter: DocumentConverter, document: UploadedDocument):
    conversion = await run_in_threadpool(converter.convert, document)
    if conversion.preview is not None:
        conversion.preview.close()
    if not conversion.ok:
        raise HTTPException(
            status_code=CONVERSION_STATUS[conversion.error.kind],
            detail={"error": conversion.error.kind.value, "message": conversion.error.message},
        )
    return conversion.file


async def load_resume_source(storage: CloudinaryStorage, record: ResumeRecord):
    """Resume text for the model, plus the preview image when there is no text layer."""
    kind = sniff_format(record.content_type, record.original_name)
    if kind is None or kind == DocumentKind.RASTER_IMAGE:
        image = await run_in_threadpool(storage.get, record.image_url)
        return "", image
    data = await run_in_threadpool(storage.get, record.resume_url)
    text = await run_in_threadpool(extract_document_text, data, kind)
    return text, None


async def require_resume(repository: ResumeRepository, owner_id: str, resume_id: str) -> ResumeRecord:
    record = await repository.get(owner_id, resume_id)
    if record is None:
        logger.warning(f"Resume {resume_id} not found for user {owner_id}")
        raise HTTPException(status_code=404, detail="Resume not found")
    return record


# POST: convert an upload to its preview image without storing anything
@router.post("/preview")
async def preview_resume(
    resume: UploadFile = File(...),
    owner_id: str = Depends(get_current_user_id),
    converter: DocumentConverter = Depends(get_converter),
):
    document = await read_upload(resume)
    preview = await convert_upload(converter, document)
    return Response(
        content=preview.data,
        media_type=preview.content_type,
        headers={"Content-Disposition": content_disposition("inline", preview.name)},
    )


# POST: convert, upload to Cloudinary, save, score with Gemini, save again
@router.post("/upload", response_model=dict)
@limiter.limit(settings.UPLOAD_RATE_LIMIT)
async def upload_resume(
    request: Request,
    resume: UploadFile = File(...),
    companyName: str = Form(""),
    jobTitle: str = Form(""),
    jobDescription: str = Form(""),
    owner_id: str = Depends(get_current_user_id),
    converter: DocumentConverter = Depends(get_converter),
    repository: ResumeRepository = Depends(get_repository),
    storage: CloudinaryStorage = Depends(get_storage),
    oracle=Depends(get_oracle),
):
    try:
        logger.info(f"Start resume upload for user {owner_id}")

        document = await read_upload(resume)
        preview = await convert_upload(converter, document)
        kind = sniff_format(document.content_type, document.filename)

        resume_url = await run_in_threadpool(storage.put, document.data, owner_id, document.filename, "auto")
        image_url = await run_in_threadpool(storage.put, preview.data, owner_id, preview.name, "image")

        job = JobContext(job_title=jobTitle, job_description=jobDescription, company_name=companyName)
        record = ResumeRecord(
            id=str(uuid.uuid4()),
            owner_id=owner_id,
            company_name=job.company_name,
            job_title=job.job_title,
            job_description=job.job_description,
            resume_url=resume_url,
            image_url=image_url,
            original_name=document.filename,
            content_type=document.content_type,
            feedback=None,
        )
        await repository.upsert(owner_id, record)
        logger.info(f"Resume {record.id} saved without feedback")

        warning = None
        try:
            resume_text = await run_in_threadpool(extract_document_text, document.data, kind)
            image = preview.data if kind == DocumentKind.RASTER_IMAGE else None
            feedback = await run_in_threadpool(oracle.score_resume, resume_text, job, image)
            logger.info("Resume feedback generated successfully")
        except OracleResponseError:
            logger.exception("Failed to parse AI response, storing default feedback")
            feedback = fallback_feedback()
        except Exception as review_error:
            logger.exception("AI analysis failed, storing default feedback")
            feedback = fallback_feedback(review_error)
            warning = "AI analysis failed, but resume was uploaded"

        record.feedback = feedback
        await repository.upsert(owner_id, record)
        logger.info(f"Feedback saved for resume {record.id}")

        body = {
            "success": True,
            "resumeId": record.id,
            "resume_url": resume_url,
            "image_url": image_url,
            "feedback": feedback.model_dump(),
        }
        if warning:
            body["warning"] = warning
        return body

    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Unhandled error during resume upload")
        raise HTTPException(status_code=500, detail=f"Upload failed: {repr(e)}")


# GET: all resumes of the authenticated user, newest first
@router.get("", response_model=dict)
async def list_resumes(
    owner_id: str = Depends(get_current_user_id),
    repository: ResumeRepository = Depends(get_repository),
):
    try:
        resumes = await repository.list(owner_id)
        logger.info(f"Found {len(resumes)} resumes for user {owner_id}")
        return {
            "success": True,
            "resumes": [record.model_dump(mode="json") for record in resumes],
        }
    except Exception as e:
        logger.exception("Error listing resumes")
        raise HTTPException(status_code=500, detail=f"Failed to fetch resumes: {repr(e)}")


# POST: rewrite the stored resume for its job
@router.post("/optimize", response_model=dict)
@limiter.limit(settings.OPTIMIZE_RATE_LIMIT)
async def optimize_resume(
    request: Request,
    payload: OptimizeRequest,
    owner_id: str = Depends(get_current_user_id),
    repository: ResumeRepository = Depends(get_repository),
    storage: CloudinaryStorage = Depends(get_storage),
    oracle=Depends(get_oracle),
):
    if not payload.resumeId:
        raise HTTPException(status_code=400, detail="Resume ID required")

    try:
        record = await require_resume(repository, owner_id, payload.resumeId)
        optimized = await rewrite(record, storage, oracle)
        return {
            "success": True,
            "optimizedContent": optimized,
            "originalName": record.original_name,
        }
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Optimization error")
        raise HTTPException(status_code=500, detail=f"Optimization failed: {repr(e)}")


# POST: styled PDF of a rewrite, either supplied or generated now
@router.post("/optimize/pdf")
@limiter.limit(settings.OPTIMIZE_RATE_LIMIT)
async def optimized_resume_pdf(
    request: Request,
    payload: OptimizeRequest,
    owner_id: str = Depends(get_current_user_id),
    repository: ResumeRepository = Depends(get_repository),
    storage: CloudinaryStorage = Depends(get_storage),
    reconstructor: DocumentReconstructor = Depends(get_reconstructor),
    oracle=Depends(get_oracle),
):
    if not payload.resumeId:
        raise HTTPException(status_code=400, detail="Resume ID required")

    try:
        record = await require_resume(repository, owner_id, payload.resumeId)
        optimized = payload.optimizedContent
        if not optimized or not optimized.strip():
            optimized = await rewrite(record, storage, oracle)

        document = await run_in_threadpool(reconstructor.reconstruct, optimized, record.original_name)
        return Response(
            content=document.data,
            media_type="application/pdf",
            headers={"Content-Disposition": content_disposition("attachment", document.name)},
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Failed to generate optimized PDF")
        raise HTTPException(status_code=500, detail=f"Failed to generate PDF: {repr(e)}")


async def rewrite(record: ResumeRecord, storage: CloudinaryStorage, oracle) -> str:
    if not record.job_title or not record.job_description:
        raise HTTPException(status_code=400, detail="Job title and description are required for optimization")

    resume_text, image = await load_resume_source(storage, record)
    logger.info(f"Optimizing resume {record.id} ({len(resume_text)} characters)")
    return await run_in_threadpool(oracle.rewrite_resume, resume_text, record.job, record.feedback, image)


# GET: one resume with its feedback
@router.get("/{resume_id}", response_model=dict)
async def get_resume(
    resume_id: str,
    owner_id: str = Depends(get_current_user_id),
    repository: ResumeRepository = Depends(get_repository),
):
    try:
        record = await require_resume(repository, owner_id, resume_id)
        return record.model_dump(mode="json")
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Error retrieving resume")
        raise HTTPException(status_code=500, detail=f"Failed to fetch resume: {repr(e)}")


# DELETE: remove one resume record
@router.delete("/{resume_id}", status_code=204)
async def delete_resume(
    resume_id: str,
    owner_id: str = Depends(get_current_user_id),
    repository: ResumeRepository = Depends(get_repository),
):
    try:
        deleted = await repository.delete(owner_id, resume_id)
    except Exception as e:
        logger.exception("Error deleting resume")
        raise HTTPException(status_code=500, detail=f"Failed to delete resume: {repr(e)}")
    if not deleted:
        raise HTTPException(status_code=404, detail="Resume not found")
    return Response(status_code=204)
