# (c) Copyright Datacraft, 2026
from . import t0001_alumni, t0002_events, t0003_alumni_mentors, t0004_settings

MODULES = [
	t0001_alumni,
	t0002_events,
	t0003_alumni_mentors,
	t0004_settings,
]
