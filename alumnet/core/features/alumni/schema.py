# (c) Copyright Datacraft, 2026
"""Alumni Pydantic schemas."""
from uuid import UUID
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class AlumnusCreate(BaseModel):
	first_name: str = Field(min_length=1, max_length=100)
	last_name: str = Field(min_length=1, max_length=100)
	email: str = Field(min_length=3, max_length=255)
	graduation_year: int | None = None
	degree: str | None = None
	employer: str | None = None
	is_mentor: bool = False


class AlumnusInfo(BaseModel):
	id: UUID
	first_name: str
	last_name: str
	email: str
	graduation_year: int | None = None
	degree: str | None = None
	employer: str | None = None
	is_mentor: bool = False
	created_at: datetime | None = None

	model_config = ConfigDict(from_attributes=True)


class EventCreate(BaseModel):
	title: str = Field(min_length=1, max_length=255)
	starts_at: datetime
	location: str | None = None
	capacity: int | None = Field(default=None, gt=0)


class EventInfo(BaseModel):
	id: UUID
	title: str
	starts_at: datetime
	location: str | None = None
	capacity: int | None = None

	model_config = ConfigDict(from_attributes=True)
