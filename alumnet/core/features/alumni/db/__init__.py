# (c) Copyright Datacraft, 2026
from .orm import Alumnus, Event, Setting

__all__ = ["Alumnus", "Event", "Setting"]
