"""Incident map API: live incident feed with multi-provider geocoding."""

__version__ = "0.1.0"
