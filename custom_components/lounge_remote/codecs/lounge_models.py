"""Pydantic models for Lounge pairing payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ScreenPayload(BaseModel):
    """Screen credentials returned for a pairing code."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    screen_id: str = Field(alias="screenId")
    lounge_token: str = Field(alias="loungeToken")
    screen_name: str = Field(default="", alias="screenName")

    @field_validator("screen_id", "lounge_token")
    @classmethod
    def _require_value(cls, value: str) -> str:
        """Reject blank credentials."""

        stripped = value.strip()
        if not stripped:
            raise ValueError("value must not be empty")
        return stripped

    @field_validator("screen_name", mode="before")
    @classmethod
    def _default_name(cls, value: object) -> object:
        """Treat a null screen name as empty."""

        return "" if value is None else value


class PairingResponse(BaseModel):
    """Envelope returned by ``/pairing/get_screen``."""

    model_config = ConfigDict(extra="ignore")

    screen: ScreenPayload
