from typing import Optional

from pydantic import BaseModel, Field, field_validator


class FacilityCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    location: Optional[str] = ""
    description: Optional[str] = ""

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Facility name required")
        return v


class FacilityUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=255)
    location: Optional[str] = None
    description: Optional[str] = None


class StaffLinkRequest(BaseModel):
    user_id: int = Field(gt=0)
