# (c) Copyright Datacraft, 2026
"""Alumni directory and events API endpoints."""
import logging

from fastapi import APIRouter, HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from alumnet.core.dependencies import TenantSession
from . import schema
from .db.orm import Alumnus, Event, Setting

router = APIRouter(tags=["alumni"])

logger = logging.getLogger(__name__)


@router.get("/alumni")
async def list_alumni(
	db_session: TenantSession,
	graduation_year: int | None = None,
	mentors_only: bool = False,
) -> list[schema.AlumnusInfo]:
	"""List alumni of the current tenant."""
	stmt = select(Alumnus).order_by(Alumnus.last_name, Alumnus.first_name)
	if graduation_year is not None:
		stmt = stmt.where(Alumnus.graduation_year == graduation_year)
	if mentors_only:
		stmt = stmt.where(Alumnus.is_mentor.is_(True))
	result = await db_session.scalars(stmt)
	return [schema.AlumnusInfo.model_validate(a) for a in result.all()]


@router.post("/alumni", status_code=201)
async def create_alumnus(
	data: schema.AlumnusCreate,
	db_session: TenantSession,
) -> schema.AlumnusInfo:
	alumnus = Alumnus(**data.model_dump())
	db_session.add(alumnus)
	try:
		await db_session.commit()
	except IntegrityError:
		await db_session.rollback()
		raise HTTPException(status_code=409, detail=f"Alumnus {data.email} already exists")
	return schema.AlumnusInfo.model_validate(alumnus)


@router.get("/events")
async def list_events(db_session: TenantSession) -> list[schema.EventInfo]:
	"""List events of the current tenant, soonest first."""
	result = await db_session.scalars(select(Event).order_by(Event.starts_at))
	return [schema.EventInfo.model_validate(e) for e in result.all()]


@router.post("/events", status_code=201)
async def create_event(
	data: schema.EventCreate,
	db_session: TenantSession,
) -> schema.EventInfo:
	event = Event(**data.model_dump())
	db_session.add(event)
	await db_session.commit()
	return schema.EventInfo.model_validate(event)


@router.get("/settings")
async def list_settings(db_session: TenantSession) -> dict:
	"""Settings stored in the current tenant's schema."""
	result = await db_session.scalars(select(Setting).order_by(Setting.key))
	return {s.key: s.value for s in result.all()}
