from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import field_validator

class Settings(BaseSettings):
    PORT: int = 8000
    DEBUG: bool = False
    GEMINI_API_KEY: str
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_TIMEOUT: float = 60.0
    ALLOWED_ORIGINS: str = ""
    REDIS_URL: str
    CACHE_TTL_SECONDS: int = 60 * 60 * 24
    CLERK_SECRET_KEY: str
    CLERK_JWT_KEY: Optional[str] = None
    CLERK_WEBHOOK_SECRET: Optional[str] = None
    MONGO_URI: str
    DB_NAME: str = "resumate"
    CLOUDINARY_CLOUD_NAME: str
    CLOUDINARY_API_KEY: str
    CLOUDINARY_API_SECRET: str
    STORAGE_TIMEOUT: float = 30.0
    RATE_LIMIT_ENABLED: bool = True
    UPLOAD_RATE_LIMIT: str = "10/minute"
    OPTIMIZE_RATE_LIMIT: str = "5/minute"
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    PDF_RENDER_SCALE: float = 4.0

    @field_validator("ALLOWED_ORIGINS")
    def parse_allowed_origins(cls, v: str) -> List[str]:
        return [origin.strip() for origin in v.split(",") if origin.strip()] if v else []

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"

settings = Settings()
