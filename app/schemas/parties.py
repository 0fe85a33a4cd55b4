"""
schemas/parties.py — Pydantic models for Party & Follow-up endpoints

Business Rules:
- name, phone and address are required, trimmed and non-empty
- email is optional; when given it must look like an address and is lowercased
- party_id is never accepted from clients (assigned by sequence_service)
- tags are trimmed and de-duplicated, order preserved

Called by: routers/parties.py
Depends on: pydantic
"""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, field_validator

_EMAIL_RE = re.compile(r"^\S+@\S+\.\S+$")


def _clean_email(v: str | None) -> str | None:
    if v is None:
        return None
    v = v.strip().lower()
    if not v:
        return None
    if not _EMAIL_RE.match(v):
        raise ValueError("Please enter a valid email address")
    return v


def _clean_tags(v: list[str] | None) -> list[str] | None:
    if v is None:
        return None
    seen: set[str] = set()
    result: list[str] = []
    for t in v:
        t = str(t).strip()
        if t and t not in seen:
            seen.add(t)
            result.append(t)
    return result


# ── Parties ──────────────────────────────────────────────────────────


class PartyCreate(BaseModel):
    name: str
    phone: str
    address: str
    email: str | None = None
    notes: str | None = None
    tags: list[str] = []

    @field_validator("name", "phone", "address")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field must not be blank")
        return v

    @field_validator("email")
    @classmethod
    def valid_email(cls, v: str | None) -> str | None:
        return _clean_email(v)

    @field_validator("tags", mode="before")
    @classmethod
    def clean_tags(cls, v):
        return _clean_tags(v) or []


class PartyUpdate(BaseModel):
    name: str | None = None
    phone: str | None = None
    address: str | None = None
    email: str | None = None
    notes: str | None = None
    tags: list[str] | None = None
    is_active: bool | None = None

    @field_validator("name", "phone", "address")
    @classmethod
    def not_blank(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("Field must not be blank")
        return v

    @field_validator("email")
    @classmethod
    def valid_email(cls, v: str | None) -> str | None:
        return _clean_email(v)

    @field_validator("tags", mode="before")
    @classmethod
    def clean_tags(cls, v):
        return _clean_tags(v)


# ── Follow-ups ───────────────────────────────────────────────────────


class FollowUpCreate(BaseModel):
    scheduled_at: datetime
    note: str | None = None

    @field_validator("note")
    @classmethod
    def strip_note(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip()[:2000] or None
