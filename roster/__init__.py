"""Roster helpers."""

from roster.operating_initials import generate_operating_initials, resolve_operating_initials

__all__ = ['generate_operating_initials', 'resolve_operating_initials']
