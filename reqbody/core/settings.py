"""Unified settings for reqbody."""

import tomllib
from pathlib import Path
from typing import ClassVar, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


def read_pyproject(pyproject_path: Path) -> dict:
    """Read pyproject.toml into a dict, empty when it is not shipped."""
    if not pyproject_path.is_file():
        return {}
    with pyproject_path.open("rb") as file_handle:
        return tomllib.load(file_handle)


class Settings(BaseSettings):
    """Unified settings for request body materialization."""

    DEBUG: bool = False
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # ClassVar to prevent Pydantic from trying to load from env
    BASE_DIR: ClassVar[Path] = Path(__file__).parent.parent.parent
    PROJECT: ClassVar[dict] = read_pyproject(BASE_DIR / "pyproject.toml")
    NAME: ClassVar[str] = PROJECT.get("project", {}).get("name", "reqbody")

    # Sources exposing read(size) are pulled in chunks of this size
    READ_CHUNK_SIZE: int = 64 * 1024

    # Multipart
    MULTIPART_MAX_PART_SIZE: int | None = None
    DEFAULT_CHARSET: str = "utf-8"

    model_config = SettingsConfigDict(
        env_prefix="REQBODY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()  # type: ignore
