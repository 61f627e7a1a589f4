from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    data_dir: Path = Path.home() / ".pageturner" / "data"
    sqlite_filename: str = "pageturner.db"
    host: str = "127.0.0.1"
    port: int = 8000
    app_url: str = "http://127.0.0.1:8000"
    log_level: str = "INFO"

    default_chunk_size: int = 1000  # characters per page
    default_documents_limit: int = 10
    max_upload_bytes: int = 128_000_000

    page_cache_ttl: float = 3600.0  # requested page
    cache_default_ttl: float = 300.0  # read-ahead page
    cache_sweep_interval: float = 60.0
    cache_invalidation_ttl: float = 60.0  # longer than any in-flight read
    prefetch_timeout: float = 5.0
    shutdown_drain_timeout: float = 10.0

    model_config = {"env_prefix": "PAGETURNER_"}


settings = Settings()
