# ruff: noqa: TC003
from __future__ import annotations

import datetime

from sqlmodel import Field

from attendance_workflow.models.base import UUIDBase


class Holiday(UUIDBase, table=True):
    """A company-wide holiday; requests and workday counts skip these days."""

    __tablename__ = "holiday"

    date: datetime.date = Field(unique=True, index=True)
    name: str = Field(max_length=255)
