from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "GYMDESK_", "env_file": ".env", "env_file_encoding": "utf-8"}

    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)
    db_path: str = Field(default="gymdesk.db")
    cors_origins: str = Field(default="http://localhost:3000")

    # Imports
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    max_import_rows: int = Field(default=50_000, gt=0)
    preview_rows: int = Field(default=10, ge=1, le=100)


settings = Settings()
