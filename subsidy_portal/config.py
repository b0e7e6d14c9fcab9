"""
Configuration settings for the Subsidy Portal
"""
from typing import List
from pydantic_settings import BaseSettings
from pydantic import Field, ConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # MongoDB Configuration
    mongodb_url: str = Field(default="mongodb://localhost:27017", description="MongoDB connection string")
    mongodb_db_name: str = Field(default="subsidy_portal", description="MongoDB database name")

    # Object storage (GridFS buckets exposed through a public file endpoint)
    public_storage_base_url: str = Field(
        default="http://localhost:8000/storage/v1/object/public",
        description="Base URL used to build public links to stored files"
    )
    default_bucket: str = Field(default="client-submissions", description="Bucket for client uploads")
    default_upload_directory: str = Field(default="uploads", description="Top-level directory inside the bucket")
    max_file_size: int = Field(default=10485760, description="Maximum upload size in bytes")  # 10MB

    # Display fallbacks
    default_logo: str = Field(
        default="/assets/img/logo/defaultlogo.jpg",
        description="Logo shown for providers without one"
    )
    default_avatar: str = Field(
        default="/assets/img/avatar/default.png",
        description="Avatar shown for users without one"
    )

    # Application Configuration
    app_name: str = Field(default="Subsidy Portal", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=True, description="Debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # API Configuration
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma separated list of allowed origins"
    )

    def get_cors_origins_list(self) -> List[str]:
        """Get CORS origins as a list"""
        if ',' in self.cors_origins:
            return [origin.strip() for origin in self.cors_origins.split(',')]
        return [self.cors_origins.strip()]

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Create global settings instance
settings = Settings()
