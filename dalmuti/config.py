"""Application configuration using Pydantic settings."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")
    environment: str = Field(default="development", description="Environment")
    log_level: str = Field(default="INFO", description="Root log level")
    frontend_url: str = Field(default="http://localhost:5173", description="Frontend URL")

    # MongoDB
    mongodb_host: str = Field(default="localhost", description="MongoDB host")
    mongodb_port: int = Field(default=27017, description="MongoDB port")
    mongodb_database: str = Field(default="dalmuti", description="MongoDB database name")
    mongodb_username: Optional[str] = Field(default=None, description="MongoDB username")
    mongodb_password: Optional[str] = Field(default=None, description="MongoDB password")

    # Game Configuration
    tax_phase_delay_seconds: float = Field(
        default=5.0, description="Delay before the tax phase advances to playing"
    )
    debug_double_joker: bool = Field(
        default=False, description="Deal both jokers into the first deck segment"
    )

    @property
    def mongodb_uri(self) -> str:
        """Build MongoDB connection URI."""
        if self.mongodb_username and self.mongodb_password:
            return f"mongodb://{self.mongodb_username}:{self.mongodb_password}@{self.mongodb_host}:{self.mongodb_port}"
        return f"mongodb://{self.mongodb_host}:{self.mongodb_port}"


# Global settings instance
settings = Settings()
