"""Case management schemas.

A case is a forensic investigation identified by its case number. Every
import run creates a new exhibit below exactly one case; the exhibit id
embeds the case id as prefix (``{case_id}_{n}``).
"""

from typing import Optional

from pydantic import BaseModel, Field


class Case(BaseModel):
    """A registered forensic case."""

    case_id: str = Field(..., description="Row key in the case table")
    case_number: str = Field(..., description="Externally supplied case number")
    name: Optional[str] = Field(None, description="Descriptive case name")
    examiner: Optional[str] = Field(None, description="Examiner in charge")

    class Config:
        frozen = True


class Exhibit(BaseModel):
    """One import run (e.g. one disk image) belonging to a case."""

    exhibit_id: str = Field(..., description="Row key in the exhibit table")
    case_id: str = Field(..., description="Owning case id")
    name: Optional[str] = Field(None, description="Descriptive exhibit name")
    import_date: Optional[str] = Field(None, description="When the import was started")
    base_path: str = Field(..., description="Blob-store directory of this exhibit")

    class Config:
        frozen = True
