"""
Configuration settings for FlowBoard.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings with environment variable support."""
    
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)
    
    # Application
    APP_NAME: str = "FlowBoard"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True
    
    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    
    # Execution engine
    STEP_DELAY_MS: int = 1000  # Delay between two execution steps
    
    # Store
    MAX_HISTORY: int = 50  # Undo stack bound
    
    # Persistence
    AUTOSAVE_PATH: Optional[str] = None  # JSON file, disabled when unset
    LOAD_DEMO_WORKFLOW: bool = True
    
    # Logging
    LOG_LEVEL: str = "INFO"
    MAX_LOG_ENTRIES: int = 500


# Global settings instance
settings = Settings()
