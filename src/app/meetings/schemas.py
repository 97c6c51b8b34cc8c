"""Pydantic v2 schemas for meeting records.

Field names on the wire follow the public API (``additionalInfo``); Python
code uses snake_case attributes.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Attendee(BaseModel):
    """A meeting attendee."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: str = Field(min_length=1)
    email: str = Field(min_length=1)


class MeetingRecord(BaseModel):
    """A stored meeting transcript with its metadata.

    ``date``, ``time`` and ``conversation`` are required and non-empty.
    Attendee order is preserved and duplicates are allowed. Numeric values
    are stored as their string form.
    """

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    date: str = Field(min_length=1)
    time: str = Field(min_length=1)
    conversation: str = Field(min_length=1)
    attendees: list[Attendee] = Field(default_factory=list)
    additional_info: str = Field(default="", alias="additionalInfo")

    def attendee_names(self) -> list[str]:
        return [a.name for a in self.attendees]

    def to_api(self) -> dict:
        """Serialize using public API field names."""
        return self.model_dump(mode="json", by_alias=True)
