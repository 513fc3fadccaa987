from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # API Settings
    PROJECT_NAME: str = "Haul Calculator API"
    API_V1_STR: str = "/api/v1"
    PROJECT_VERSION: str = "0.1.0"
    DESCRIPTION: str = "Import cost calculator for overseas hauls"

    # MongoDB
    MONGODB_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "haulcalc"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # JWT
    SECRET_KEY: str = "change-this-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # OCR (Gemini)
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.0-flash"
    OCR_TIMEOUT_SECONDS: float = 120.0

    # Exchange rates
    EXCHANGE_RATE_API_URL: str = "https://dolarapi.com/v1/dolares"
    EXCHANGE_RATE_TIMEOUT_SECONDS: float = 10.0

    # File Upload
    MAX_FILE_SIZE: int = 10485760

    # Tax policy
    SOURCE_TO_USD_RATE: float = 0.14
    POSTAL_SURCHARGE_LOCAL: float = 4900.0
    DUTY_FREE_ALLOWANCE_USD: float = 50.0
    DUTY_RATE: float = 0.5

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env"
    )

settings = Settings()
