# taskboard_app/settings.py
from __future__ import annotations

import json
from typing import Annotated, List, Optional
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic import Field, field_validator

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )

    # --- DB ---
    DATABASE_URL: str = Field(default='sqlite:///./taskboard.db')

    # --- App ---
    APP_ENV: Optional[str] = Field(default='prod')
    LOG_LEVEL: str = Field(default='INFO')

    # --- Admin (/admin) ---
    SECRET_KEY: str = Field(default='change_me')
    ADMIN_USERNAME: str = Field(default='admin')
    ADMIN_PASSWORD_HASH: Optional[str] = Field(default=None)

    # --- CORS ---
    # NoDecode hands the raw env string to parse_cors instead of json-decoding it
    CORS_ORIGINS: Annotated[List[str], NoDecode] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000"]
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors(cls, v):
        """
        Accepts:
        - JSON: '["http://a","http://b"]'
        - Commas: 'http://a,http://b'
        - Empty: falls back to the default
        """
        if v is None:
            return cls.model_fields["CORS_ORIGINS"].default
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            s = v.strip()
            if not s:
                return cls.model_fields["CORS_ORIGINS"].default
            if s.startswith("["):
                try:
                    origins = json.loads(s)
                except json.JSONDecodeError:
                    raise ValueError("CORS_ORIGINS must be valid JSON or a comma-separated list.")
                return [str(o).strip() for o in origins if str(o).strip()]
            return [part.strip() for part in s.split(",") if part.strip()]
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return (v or "INFO").strip().upper()

settings = Settings()
