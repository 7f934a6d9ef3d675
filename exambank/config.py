from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = ""
    environment: str = "dev"
    # Question store settings
    question_store_backend: str = "sql"  # sql, memory
    # Resolution settings
    diagnostic_sample_size: int = 3  # Sample questions attached to a not-found diagnostic
    missing_question_text: str = "Question text not available"  # Sentinel written by older upload paths
    default_subject_name: str = "Unknown Subject"
    # File upload settings
    upload_max_size: int = 10 * 1024 * 1024  # 10MB for CSV/Excel uploads
    # CORS settings
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]


class LoggingSettings(BaseSettings):
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"  # "text" or "json"

    class Config:
        env_prefix = "APP_"


class SubjectMatchingSettings(BaseSettings):
    # Token-level rewrites applied before any comparison
    synonyms: dict[str, str] = {
        "fundamentals": "fundamental",
        "fundamentle": "fundamental",
        "maths": "math",
        "mathematics": "math",
    }
    # Mutually exclusive subject buckets; order decides classification
    categories: dict[str, list[str]] = {
        "powerpoint": ["powerpoint", "power point", "ms powerpoint", "microsoft powerpoint"],
        "excel": ["excel", "ms excel", "microsoft excel", "spreadsheet"],
        "word": ["word", "ms word", "microsoft word"],
        "fundamental": ["fundamental", "fundamentals", "fundamentle", "basic"],
        "computer": ["computer", "pc", "computing"],
        "internet": ["internet", "web", "www"],
        "windows": ["windows", "win", "microsoft windows", "operating system"],
    }
    min_token_length: int = 3
    overlap_ratio: float = 0.5

    class Config:
        env_prefix = "SUBJECT_MATCH_"


logging_settings = LoggingSettings()

subject_matching_settings = SubjectMatchingSettings()

settings = Settings()  # type: ignore
