from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path
from typing import Optional

# Get the project root directory (parent of the microlearn package)
PROJECT_ROOT = Path(__file__).parent.parent

class Settings(BaseSettings):
    """Engine configuration loaded from MICROLEARN_* environment variables"""
    model_config = SettingsConfigDict(
        env_prefix="MICROLEARN_",
        env_file=str(PROJECT_ROOT / ".env"),
        extra="ignore",
    )

    database_url: str = "sqlite:///./microlearn.db"
    log_level: str = "INFO"

    # Scheduling knobs
    initial_ease_factor: float = 2.5
    max_interval_days: Optional[int] = None  # None = intervals grow without bound
    max_session_minutes: int = 30
    struggling_threshold: float = 70.0
    strength_threshold: float = 90.0

    # Content generator settings
    ai_provider: str = "ollama"  # "ollama" or "claude"
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.2:latest"
    claude_api_key: str = ""
    claude_model: str = "claude-3-5-sonnet-20241022"
    default_chunk_count: int = 8

settings = Settings()
