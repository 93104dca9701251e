"""Settings loaded from the environment (and an optional `.env` file)."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Tracker settings.

    Every field reads a `BLAST_JOBS_*` variable; defaults target the public
    NCBI service and a per-user data directory.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    data_dir: Path = Field(Path("~/.blast-jobs"), alias="BLAST_JOBS_DATA_DIR")
    base_url: str = Field("https://blast.ncbi.nlm.nih.gov/Blast.cgi", alias="BLAST_JOBS_BASE_URL")
    program: str = Field("blastn", alias="BLAST_JOBS_PROGRAM")
    database: str = Field("core_nt", alias="BLAST_JOBS_DATABASE")
    timeout_s: float = Field(30.0, alias="BLAST_JOBS_TIMEOUT_S")
    # Threads per ready job: one per downloaded report.
    fetch_workers: int = Field(2, alias="BLAST_JOBS_FETCH_WORKERS")
    log_level: str = Field("WARNING", alias="BLAST_JOBS_LOG_LEVEL")

    @field_validator("data_dir")
    @classmethod
    def _expand_data_dir(cls, v: Path) -> Path:
        return v.expanduser()

    @field_validator("fetch_workers")
    @classmethod
    def _at_least_one_worker(cls, v: int) -> int:
        return max(1, v)


@lru_cache
def get_settings() -> Settings:
    """Load settings once per process; call `get_settings.cache_clear()` to reload."""
    return Settings()
