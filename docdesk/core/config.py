from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal, Mapping

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class UploadSettings(BaseModel):
    max_file_bytes: int = Field(10_000_000, ge=1, description="Largest accepted upload, in bytes (10 MB).")
    workspace_extensions: dict[str, list[str]] = Field(
        default_factory=lambda: {
            "operations": [".pdf"],
            "converter": [".pdf", ".doc", ".docx", ".xls", ".xlsx", ".csv", ".txt"],
            "chat": [".pdf", ".txt", ".doc", ".docx"],
        },
        description="Extensions accepted by each workspace tab; uploads without a workspace accept anything.",
    )


class ToolkitSettings(BaseModel):
    image_scale: float = Field(2.0, gt=0.0, le=8.0, description="Zoom factor applied when rendering pages to PNG.")
    page_width_mm: float = Field(210.0, gt=0.0)
    page_height_mm: float = Field(297.0, gt=0.0)
    margin_left_mm: float = Field(10.0, ge=0.0)
    margin_top_mm: float = Field(20.0, ge=0.0)
    title_gap_mm: float = Field(20.0, ge=0.0, description="Vertical space reserved under a document title.")
    line_height_mm: float = Field(10.0, gt=0.0)
    bottom_limit_mm: float = Field(280.0, gt=0.0, description="Lines starting below this offset move to a new page.")
    wrap_width_mm: float = Field(180.0, gt=0.0)
    font_name: str = Field("helv", min_length=1, description="Base-14 font used for generated PDFs.")
    title_font_size: float = Field(16.0, gt=0.0)
    body_font_size: float = Field(12.0, gt=0.0)
    garbage_level: int = Field(4, ge=0, le=4, description="PyMuPDF garbage collection level used by compress.")
    deflate: bool = Field(True)


class GeminiSettings(BaseModel):
    api_key: str | None = Field(default=None, description="Google Generative Language API key.")
    model: str = Field("gemini-1.5-flash", min_length=1)
    temperature: float = Field(0.3, ge=0.0, le=2.0)


class ChatSettings(BaseModel):
    context_char_limit: int = Field(10_000, ge=1, description="Characters of each document placed in a prompt.")
    max_context_chars: int = Field(
        200_000,
        ge=1,
        description="Upper bound on the combined document characters placed in a single prompt.",
    )
    overflow_policy: Literal["drop_oldest", "reject"] = Field(
        "drop_oldest",
        description="What to do when the documents exceed max_context_chars.",
    )
    apology_message: str = Field(
        "Sorry, something went wrong while processing your message. "
        "Check that the Gemini API key is configured correctly.",
        min_length=1,
    )


class ObservabilitySettings(BaseModel):
    prometheus_enabled: bool = Field(True)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


class Settings(BaseSettings):
    environment: Literal["local", "test", "production"] = Field("local")
    api_v1_prefix: str = Field("/api/v1")

    uploads: UploadSettings = Field(default_factory=UploadSettings)  # type: ignore[arg-type]
    toolkit: ToolkitSettings = Field(default_factory=ToolkitSettings)  # type: ignore[arg-type]
    gemini: GeminiSettings = Field(default_factory=GeminiSettings)  # type: ignore[arg-type]
    chat: ChatSettings = Field(default_factory=ChatSettings)  # type: ignore[arg-type]
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)  # type: ignore[arg-type]

    frontend_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"],
        description="Origins permitted to access the API via CORS.",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def _get_cached_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]


def get_settings(overrides: Mapping[str, Any] | None = None) -> Settings:
    """Return settings, using cached defaults unless overrides are provided."""
    if overrides:
        materialized = dict(overrides)
        allowed_keys = {"environment", "chat", "toolkit", "uploads", "gemini"}
        filtered = {key: value for key, value in materialized.items() if key in allowed_keys}
        if filtered:
            return Settings(**filtered)
    return _get_cached_settings()
