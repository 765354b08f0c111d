from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="BINDING_", env_file=".env", extra="ignore")

    # API
    SERVICE_NAME: str = "binding-service"
    PORT: int = 8040
    LOG_LEVEL: str = "INFO"
    # list-typed env values are decoded as JSON, e.g. BINDING_CORS_ALLOW_ORIGINS='["*"]'
    CORS_ALLOW_ORIGINS: List[str] = Field(default_factory=list)

    # Storage: "file" (JSON files), "mongo" or "memory"
    STORE_BACKEND: Literal["file", "mongo", "memory"] = "file"

    # File backend
    CODES_FILE: str = "./codes.json"
    BINDINGS_FILE: str = "./bindings.json"

    # Seeded when no code source exists yet
    DEFAULT_CODE: str = "ABC123"

    # Memory backend
    CODES: List[str] = Field(default_factory=lambda: ["ABC123"])

    # MongoDB
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB: str = "binding"

    # Collections
    COL_CODES: str = "access_codes"
    COL_BINDINGS: str = "bindings"

    # Diagnostics / admin
    DEBUG_CODES_ENABLED: bool = False
    ADMIN_TOKEN: Optional[str] = Field(default=None)
    ADMIN_TOKEN_HEADER: str = "x-admin-token"


settings = Settings()
