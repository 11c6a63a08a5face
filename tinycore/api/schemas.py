"""Pydantic schemas for API request validation.

This module defines Pydantic models for all API request payloads. These schemas
provide automatic validation of request structure, types, and constraints.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, Field, field_validator

from tinycore.config import Config

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
APP_ID_PATTERN = r"^[a-zA-Z0-9_-]+$"

# -----------------------------------------------------------------------------
# User Schemas
# -----------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Schema for POST /api/v1/users/register."""

    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., max_length=72)
    metadata: dict[str, Any] | None = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email address")
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < Config.MIN_PASSWORD_LENGTH:
            raise ValueError(
                f"Password must be at least {Config.MIN_PASSWORD_LENGTH} characters"
            )
        return v


class LoginRequest(BaseModel):
    """Schema for POST /api/v1/users/login."""

    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


# -----------------------------------------------------------------------------
# Application Schemas
# -----------------------------------------------------------------------------


class CreateApplicationRequest(BaseModel):
    """Schema for POST /api/v1/apps."""

    id: str = Field(..., min_length=1, max_length=100, pattern=APP_ID_PATTERN)
    name: str = Field(..., min_length=1, max_length=255)
    metadata: dict[str, Any] | None = None


class UpdateApplicationRequest(BaseModel):
    """Schema for PUT /api/v1/apps/<id>."""

    name: str = Field(..., min_length=1, max_length=255)
    metadata: dict[str, Any] | None = None


# -----------------------------------------------------------------------------
# KV Store Schemas
# -----------------------------------------------------------------------------


class KVSetRequest(BaseModel):
    """Schema for PUT /api/v1/kv/<app_id>/<key>.

    value may be any JSON document, including null.
    """

    value: Any
    metadata: dict[str, Any] | None = None
