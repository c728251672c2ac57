from fastapi import APIRouter, Depends, Request, HTTPException
from svix.webhooks import Webhook, WebhookVerificationError
import json, logging

from resumate.services.config import settings
from resumate.services.repository import ResumeRepository
from resumate.utils.deps import get_repository

router = APIRouter(
    prefix="/webhooks",
    tags=["Webhooks"]
)
logger = logging.getLogger("uvicorn.error")

SVIX_HEADERS = ("svix-id", "svix-timestamp", "svix-signature")


@router.post("/clerk")
async def handle_clerk_webhook(
    request: Request,
    repository: ResumeRepository = Depends(get_repository),
):
    webhook_secret = settings.CLERK_WEBHOOK_SECRET
    if not webhook_secret:
        raise HTTPException(status_code=500, detail="CLERK_WEBHOOK_SECRET not configured")

    # Read the raw body (must remain unmodified for Svix verification)
    body = await request.body()
    payload = body.decode("utf-8")
    headers = dict(request.headers)

    if not all(h in headers for h in SVIX_HEADERS):
        logger.error("Missing required Svix headers")
        raise HTTPException(status_code=400, detail="Missing Svix headers")

    try:
        Webhook(webhook_secret).verify(payload, headers)
    except WebhookVerificationError as e:
        logger.error(f"Webhook verification failed: {repr(e)}")
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    event = json.loads(payload)
    if event.get("type") != "user.deleted":
        logger.info(f"Ignored event type: {event.get('type')}")
        return {"status": "ignored"}

    clerk_id = event.get("data", {}).get("id")
    if not clerk_id:
        logger.error("user.deleted event without a user id")
        raise HTTPException(status_code=400, detail="Invalid user data")

    try:
        deleted = await repository.delete_all(clerk_id)
    except Exception as e:
        logger.exception("Failed to remove resumes of deleted user")
        raise HTTPException(status_code=500, detail=f"Webhook processing failed: {str(e)}")

    logger.info(f"Removed {deleted} resume(s) of deleted user {clerk_id}")
    return {"status": "success", "deleted": deleted}
