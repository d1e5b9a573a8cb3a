"""Logging helpers shared by every package."""
