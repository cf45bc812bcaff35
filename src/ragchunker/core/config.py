from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List, Dict, Any
from pathlib import Path


class Settings(BaseSettings):
    # Chunking
    CHUNK_MODE: str = "recursive"  # recursive|ai
    CHUNK_SIZE: int = 512  # Token budget for the local splitter
    CHUNK_PROFILE: str = "official"  # official|manual_ai
    CHUNK_VERSION_LABEL: str = "M3 Cloud"  # source.version on every chunk
    CHUNK_MODULES: List[str] = ["Finance"]  # tags.module on every chunk

    # Segmentation oracle (OpenRouter chat completions)
    OPENROUTER_API_KEY: Optional[str] = None
    OPENROUTER_MODEL: str = "xiaomi/mimo-v2-flash:free"
    OPENROUTER_URL: str = "https://openrouter.ai/api/v1/chat/completions"
    OPENROUTER_REFERER: str = "https://rag-chunker.local"
    OPENROUTER_TITLE: str = "RAG Data Chunker"
    OPENROUTER_TIMEOUT: float = 60.0
    OPENROUTER_THROTTLE_SECONDS: float = Field(
        default=1.0,
        ge=0.0,
        description="Pause after each successful oracle call",
    )

    # Observability & UI
    LOG_FORMAT: str = "auto"  # json|plain|auto
    LOG_LEVEL: str = "info"  # debug shows every dropped segment
    PROGRESS: bool = True  # Show progress bars
    NO_COLOR: bool = False  # Disable colored output

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @classmethod
    def load_config(cls, config_file: Optional[str] = None) -> "Settings":
        """Load settings with config file -> env -> CLI precedence."""
        config_data: Dict[str, Any] = {}

        # Find config file
        config_path: Optional[Path]
        if config_file:
            config_path = Path(config_file)
        else:
            # Auto-discover .ragchunker.{yaml,yml,toml}
            for ext in ["yaml", "yml", "toml"]:
                config_path = Path(f".ragchunker.{ext}")
                if config_path.exists():
                    break
            else:
                config_path = None

        if config_path and config_path.exists():
            if config_path.suffix in [".yaml", ".yml"]:
                import yaml  # type: ignore[import-untyped]

                with open(config_path) as f:
                    config_data = yaml.safe_load(f) or {}
            elif config_path.suffix == ".toml":
                import tomllib

                with open(config_path, "rb") as f:
                    config_data = tomllib.load(f)

        # Environment variables and CLI args override these
        return cls(**config_data)


# Default settings - replaced by load_config() during CLI startup
SETTINGS = Settings()
