"""
Member record schemas shared by the sheets integration, the
reconciler and the HTTP layer.

Wire names follow the dashboard client (``igLink``, ``rowIndex``);
Python attributes use snake_case.
"""

from typing import Optional, Dict

from pydantic import BaseModel, ConfigDict, Field

from .enums import RecordSource


EDITABLE_FIELDS = ("tel", "topic", "keyword", "title", "social_link")


class MemberFields(BaseModel):
    """The editable part of a member record."""
    model_config = ConfigDict(populate_by_name=True)

    tel: str = ""
    topic: str = ""
    keyword: str = ""
    title: str = ""
    social_link: str = Field(default="", alias="igLink")

    def has_content(self) -> bool:
        """True when at least one editable field holds a non-blank value."""
        return any((getattr(self, name) or "").strip() for name in EDITABLE_FIELDS)

    def as_wire(self) -> Dict[str, str]:
        return self.model_dump(by_alias=True)


class MemberRecord(MemberFields):
    """A member record as resolved from one of the two stores."""

    email: str
    row_index: Optional[int] = Field(default=None, alias="rowIndex")
    source: RecordSource = RecordSource.empty

    def to_user_data(self) -> Dict[str, object]:
        """Shape returned to the dashboard under ``userData``."""
        return {
            "email": self.email,
            "tel": self.tel,
            "topic": self.topic,
            "keyword": self.keyword,
            "title": self.title,
            "igLink": self.social_link,
            "rowIndex": self.row_index,
        }

    @classmethod
    def empty(cls, email: str) -> "MemberRecord":
        return cls(email=email, source=RecordSource.empty)


class SheetsRequest(BaseModel):
    """Body of POST /api/google-sheets"""
    model_config = ConfigDict(populate_by_name=True)

    action: Optional[str] = None
    email: Optional[str] = None
    row_index: Optional[int] = Field(default=None, alias="rowIndex", ge=1)
    data: Optional[MemberFields] = None
