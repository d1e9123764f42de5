"""Configuration management using Pydantic for validation."""

from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SourceClientConfig(BaseSettings):
    """Official registry client configuration."""

    api_base: str = "https://searchetv99.azurewebsites.net/api"
    pdf_base: str = "https://ia37rg02wpsa01.blob.core.windows.net/fek"
    user_agent: str = "fek-ingest/0.1 (Greek official gazette ingestion)"
    min_delay_seconds: float = 1.2
    max_retries: int = 3
    backoff_base_seconds: float = 2.0
    timeout: int = 60

    @field_validator("min_delay_seconds", "backoff_base_seconds")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        """Validate delays are not negative."""
        if v < 0:
            raise ValueError("Delays must be >= 0")
        return v


class ExtractionConfig(BaseSettings):
    """PDF text extraction configuration."""

    ocr_enabled: bool = False
    max_ocr_pages: int = 35
    allow_low_quality_fallback: bool = False
    ocr_dpi: int = 260
    ocr_language: str = "ell"
    ocr_psm: int = 6


class TextCleaningConfig(BaseSettings):
    """Text cleaning configuration.

    When ``patterns_file`` is unset the cleaner uses its built-in gazette patterns.
    """

    patterns_file: Optional[str] = None


class SegmentationConfig(BaseSettings):
    """Provision segmentation configuration."""

    min_body_chars: int = 40
    max_inline_title_chars: int = 180
    max_body_title_chars: int = 160
    chapter_lookback_chars: int = 12000


class DefinitionConfig(BaseSettings):
    """Definition extraction configuration."""

    max_definitions: int = 100
    min_definition_chars: int = 15
    max_term_chars: int = 120
    candidate_window_chars: int = 200


class PipelineConfig(BaseSettings):
    """Pipeline configuration."""

    status_every: int = 25
    max_failures_recorded: int = 200
    newest_first: bool = True
    allow_fulltext_fallback: bool = True
    corpus_allow_low_quality_fallback: bool = True
    targets_allow_low_quality_fallback: bool = False

    @field_validator("status_every")
    @classmethod
    def validate_status_every(cls, v: int) -> int:
        """Validate the checkpoint interval is positive."""
        if v < 1:
            raise ValueError("status_every must be >= 1")
        return v


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    level: str = "INFO"
    format: Literal["json", "text"] = "text"
    file: str = "logs/fek_ingest.log"
    max_size_mb: int = 10
    retention: str = "1 week"


class Config(BaseSettings):
    """Main configuration class."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )

    # Configuration sections
    source: SourceClientConfig = Field(default_factory=SourceClientConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    text_cleaning: TextCleaningConfig = Field(default_factory=TextCleaningConfig)
    segmentation: SegmentationConfig = Field(default_factory=SegmentationConfig)
    definitions: DefinitionConfig = Field(default_factory=DefinitionConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Data paths
    seed_dir: Path = Field(default=Path("data/seed"))
    fulltext_dir: Path = Field(default=Path("data/seed/_country-fulltext"))
    corpus_file: Path = Field(default=Path("data/seed/_country-scope-documents.json"))
    progress_file: Path = Field(default=Path("data/seed/_country-fulltext-progress.json"))

    @staticmethod
    def _deep_merge_dict(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
        """Deep-merge two dicts (overrides win)."""
        merged: Dict[str, Any] = dict(base)
        for key, value in overrides.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = Config._deep_merge_dict(merged[key], value)
            else:
                merged[key] = value
        return merged

    @classmethod
    def from_yaml(cls, yaml_path: str | Path = "config/config.yaml") -> "Config":
        """Load configuration from YAML file and environment variables.

        Precedence (highest to lowest):
        1) Environment variables / .env
        2) YAML file
        3) Model defaults

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            Config instance with loaded settings

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            ValueError: If the YAML root is not a mapping
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        with open(yaml_path, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}

        if not isinstance(yaml_config, dict):
            raise ValueError(f"YAML config root must be a mapping/dict: {yaml_path}")

        # Only non-default env values are layered on top of YAML.
        env_overrides = cls().model_dump(exclude_defaults=True)
        merged = cls._deep_merge_dict(yaml_config, env_overrides)

        return cls(**merged)

    def validate_config(self) -> None:
        """Validate configuration settings.

        Raises:
            ValueError: If configuration is invalid
        """
        for path_name in ["seed_dir", "fulltext_dir"]:
            path = getattr(self, path_name)
            path.mkdir(parents=True, exist_ok=True)

        if self.extraction.max_ocr_pages < 1:
            raise ValueError("extraction.max_ocr_pages must be >= 1")
        if self.source.max_retries < 0:
            raise ValueError("source.max_retries must be >= 0")
        if self.definitions.max_definitions < 1:
            raise ValueError("definitions.max_definitions must be >= 1")
        if self.text_cleaning.patterns_file and not Path(self.text_cleaning.patterns_file).exists():
            raise ValueError(
                f"Cleaning patterns file not found: {self.text_cleaning.patterns_file}"
            )


# Global configuration instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance.

    Returns:
        Global Config instance

    Raises:
        RuntimeError: If configuration hasn't been initialized
    """
    global _config
    if _config is None:
        raise RuntimeError("Configuration not initialized. Call load_config() first.")
    return _config


def load_config(yaml_path: str | Path = "config/config.yaml") -> Config:
    """Load and validate configuration.

    Args:
        yaml_path: Path to YAML configuration file

    Returns:
        Loaded and validated Config instance
    """
    global _config
    _config = Config.from_yaml(yaml_path)
    _config.validate_config()
    return _config


def reset_config() -> None:
    """Reset global configuration (mainly for testing)."""
    global _config
    _config = None
