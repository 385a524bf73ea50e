"""
Attendance API schemas (request models).

Name/phone rules are checked in the service layer so the client gets the
same field-level messages whether a field is missing or too short.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class AttendanceRequest(BaseModel):
    name: str | None = Field(default=None, max_length=200)
    phone: str | None = Field(default=None, max_length=40)


class SendSmsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # If omitted, the default confirmation text is sent.
    custom_message: str | None = Field(default=None, alias="customMessage", max_length=1000)
