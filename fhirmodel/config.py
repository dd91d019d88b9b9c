import os
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    FHIR_SCHEMA_DIR: str = os.getenv("FHIR_SCHEMA_DIR", "")
    REPORT_ADVISORY_BINDINGS: bool = _flag("REPORT_ADVISORY_BINDINGS", "true")


settings = Settings()
