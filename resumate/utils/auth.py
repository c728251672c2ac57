import logging
from fastapi import HTTPException, Request
from clerk_backend_api import Clerk
from clerk_backend_api.security.types import AuthenticateRequestOptions
from resumate.services.config import settings

logger = logging.getLogger("uvicorn.error")

clerk_sdk = Clerk(bearer_auth=settings.CLERK_SECRET_KEY)


def authenticate_and_get_user_details(request: Request) -> dict:
    try:
        request_state = clerk_sdk.authenticate_request(
            request,
            AuthenticateRequestOptions(
                authorized_parties=settings.ALLOWED_ORIGINS or None,
                jwt_key=settings.CLERK_JWT_KEY,
            ),
        )
    except Exception as e:
        logger.error("Clerk authentication failed: %r", e)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if not request_state.is_signed_in:
        logger.info("Rejected unauthenticated request: %s", request_state.reason)
        raise HTTPException(status_code=401, detail="Unauthorized")

    user_id = request_state.payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return {"user_id": user_id}


def get_current_user_id(request: Request) -> str:
    return authenticate_and_get_user_details(request)["user_id"]
