import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from dotenv import load_dotenv

from resumate.services.config import settings
from resumate.services.converter import DocumentConverter
from resumate.services.rasterizer import PdfPageDecoder
from resumate.services.reconstructor import DocumentReconstructor
from resumate.services.repository import ResumeRepository
from resumate.services.storage import CloudinaryStorage, init_cloudinary
from resumate.utils.db import close_db, init_db
from resumate.utils.limiter import limiter
from resumate.routers.resume import router as resume_router
from resumate.routers.clerk import router as clerk_router

# Load environment variables
load_dotenv()

# Logging
logging.basicConfig(level=logging.DEBUG if settings.DEBUG else logging.INFO)
logger = logging.getLogger("uvicorn.error")

# Create FastAPI app
app = FastAPI(
    title="Resumate",
    description="Resume previews, ATS scoring and optimized rewrites",
    version="0.1.0",
    redoc_url="/redoc",
    docs_url="/docs",
)

# Include routers immediately so they appear in Swagger Docs
app.include_router(resume_router, prefix="/api")
app.include_router(clerk_router, prefix="/api")

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Cloudinary config
init_cloudinary()

# Conversion and persistence services shared by every request
app.state.decoder = PdfPageDecoder(scale=settings.PDF_RENDER_SCALE)
app.state.converter = DocumentConverter(app.state.decoder)
app.state.reconstructor = DocumentReconstructor()
app.state.repository = ResumeRepository()
app.state.storage = CloudinaryStorage()


# Root endpoint
@app.get("/")
@limiter.limit("100/minute")
def read_root(request: Request):
    return {"message": "Welcome to Resumate"}


@app.get("/health")
def health_check():
    return {"status": "healthy"}


@app.on_event("startup")
async def start_db():
    try:
        logger.info("Initializing database (startup)...")
        await init_db()
        logger.info("Database initialized successfully.")
    except Exception as e:
        logger.error(f"Database initialization failed: {repr(e)}")


@app.on_event("shutdown")
async def shutdown():
    app.state.decoder.close()
    close_db()


# Local run entrypoint
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("resumate.server:app", host="0.0.0.0", port=settings.PORT, reload=settings.DEBUG)
