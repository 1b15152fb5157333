# (c) Copyright Datacraft, 2026
"""
Declarative bases.

`Base` holds the registry tables that live in the shared (public) schema.
`TenantBase` holds tenant-scoped tables; their schema is the placeholder
`TENANT_SCHEMA`, which is translated to the active tenant's physical schema
at execution time and never exists in the database itself.
"""
from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

TENANT_SCHEMA = "tenant"


class Base(DeclarativeBase):
	pass


class TenantBase(DeclarativeBase):
	metadata = MetaData(schema=TENANT_SCHEMA)
