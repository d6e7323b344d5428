from typing import Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    # -------------------------------------------------
    # General
    # -------------------------------------------------
    PROJECT_NAME: str = "ProjectHub Core"
    ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # -------------------------------------------------
    # Supabase (document persistence)
    # -------------------------------------------------
    SUPABASE_URL: Optional[str] = None
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None
    PROJECTS_TABLE: str = "projects"

    # -------------------------------------------------
    # S3 (attachment blobs)
    # -------------------------------------------------
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    AWS_BUCKET_NAME: Optional[str] = None
    AWS_REGION: str = "us-east-2"

    # "public" stores the plain object URL, "presigned" a time-limited one
    ATTACHMENT_URL_STYLE: Literal["public", "presigned"] = "public"
    PRESIGNED_URL_EXPIRY_SECONDS: int = Field(
        86400,
        description="Lifetime of presigned attachment URLs (default: 1 day)",
    )

    # -------------------------------------------------
    # Model Config
    # -------------------------------------------------
    # Real environment variables only, no .env file
    model_config = SettingsConfigDict(case_sensitive=True)


# Instantiate settings
settings = Settings()
