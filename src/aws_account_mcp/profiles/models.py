"""Persisted profile records."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from aws_account_mcp.utils.masking import mask_access_key
from aws_account_mcp.utils.time import utc_now_iso

Environment = Literal["dev", "staging", "production", "test"]

STORE_VERSION = "1.0.0"


class Profile(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    access_key_id: str = Field(alias="accessKeyId")
    secret_access_key: str = Field(alias="secretAccessKey")
    region: str
    session_token: str | None = Field(default=None, alias="sessionToken")
    environment: Environment
    is_active: bool = Field(default=False, alias="isActive")
    description: str | None = None
    account_id: str | None = Field(default=None, alias="accountId")
    alias: str | None = None
    created_at: str = Field(default_factory=utc_now_iso, alias="createdAt")
    updated_at: str = Field(default_factory=utc_now_iso, alias="updatedAt")

    def to_record(self) -> dict[str, object]:
        return self.model_dump(by_alias=True, exclude_none=True)

    def summary(self) -> dict[str, object]:
        """Public view without secret material."""
        data: dict[str, object] = {
            "name": self.name,
            "region": self.region,
            "environment": self.environment,
            "isActive": self.is_active,
            "accessKeyId": mask_access_key(self.access_key_id),
            "hasSessionToken": bool(self.session_token),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        for key, value in (
            ("description", self.description),
            ("accountId", self.account_id),
            ("alias", self.alias),
        ):
            if value:
                data[key] = value
        return data


class ProfileDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    version: str = STORE_VERSION
    active_profile: str | None = Field(default=None, alias="activeProfile")
    profiles: dict[str, Profile] = Field(default_factory=dict)
    last_modified: str = Field(default_factory=utc_now_iso, alias="lastModified")
