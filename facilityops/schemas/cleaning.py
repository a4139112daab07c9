from datetime import date

from pydantic import BaseModel, Field, AliasChoices


class AssignmentCreateRequest(BaseModel):
    facility_id: int = Field(gt=0, validation_alias=AliasChoices("facility_id", "facilityId"))
    assigned_user_id: int = Field(gt=0, validation_alias=AliasChoices("assigned_user_id", "assignedUserId"))
    scheduled_date: date = Field(validation_alias=AliasChoices("scheduled_date", "scheduledDate"))


class AssignmentStatusRequest(BaseModel):
    status: str
