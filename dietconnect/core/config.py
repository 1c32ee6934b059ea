import os
from pydantic_settings import BaseSettings


def get_default_database_url() -> str:
    """Get default database URL based on environment."""
    if os.environ.get("DATABASE_URL"):
        return os.environ.get("DATABASE_URL")
    # Serverless platforms only allow writes under /tmp
    if os.environ.get("VERCEL") or os.environ.get("AWS_LAMBDA_FUNCTION_NAME"):
        return "sqlite:////tmp/dietconnect.db"
    return "sqlite:///./dietconnect.db"


class Settings(BaseSettings):
    APP_NAME: str = "DietConnect API"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    CORS_ALLOWED_ORIGINS: list[str] = ["*"]
    FRONTEND_URL: str = "http://localhost:3000"
    DATABASE_URL: str = get_default_database_url()

    # Staff identity provider
    IDP_JWT_SECRET: str = ""
    IDP_JWT_ALGORITHM: str = "HS256"
    IDP_JWT_AUDIENCE: str = ""
    IDP_JWT_ISSUER: str = ""
    IDP_API_URL: str = ""
    IDP_SECRET_KEY: str = ""

    # Client (mobile app) auth
    CLIENT_JWT_SECRET: str = "change-me"
    CLIENT_ACCESS_TOKEN_TTL_SECONDS: int = 900
    CLIENT_REFRESH_TOKEN_TTL_DAYS: int = 30
    OTP_TTL_SECONDS: int = 300

    # Rate limits, in `limits` notation
    RATE_LIMIT_OTP_REQUEST: str = "3 per 5 minutes"
    RATE_LIMIT_OTP_VERIFY: str = "5 per 5 minutes"
    RATE_LIMIT_API: str = "100 per minute"
    RATE_LIMIT_WRITE: str = "30 per minute"

    # Meal compliance scoring
    COMPLIANCE_WEIGHT_ON_TIME: int = 25
    COMPLIANCE_WEIGHT_PHOTO: int = 15
    COMPLIANCE_WEIGHT_CORRECT_FOODS: int = 30
    COMPLIANCE_WEIGHT_PORTION_ACCURACY: int = 30
    COMPLIANCE_BONUS_DIETITIAN_APPROVED: int = 10
    COMPLIANCE_PENALTY_SUBSTITUTION: int = -10
    COMPLIANCE_SKIPPED_SCORE: int = 0
    COMPLIANCE_GREEN_MIN: int = 80
    COMPLIANCE_YELLOW_MIN: int = 60
    COMPLIANCE_ON_TIME_WINDOW_MINUTES: int = 30
    COMPLIANCE_PORTION_TOLERANCE_PCT: float = 0.15
    COMPLIANCE_TREND_THRESHOLD: int = 5

    # S3-compatible object storage
    S3_ENDPOINT: str = ""
    S3_REGION: str = "us-east-1"
    S3_ACCESS_KEY: str = ""
    S3_SECRET_KEY: str = ""
    S3_BUCKET: str = "dietconnect"
    S3_PUBLIC_URL: str = ""
    PRESIGNED_URL_EXPIRY_SECONDS: int = 3600
    MAX_UPLOAD_MB: int = 10

    # Email
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    EMAIL_FROM: str = "DietConnect <noreply@dietconnect.app>"

    # Push notifications
    EXPO_PUSH_URL: str = "https://exp.host/--/api/v2/push/send"

    class Config:
        env_file = ".env"


settings = Settings()
