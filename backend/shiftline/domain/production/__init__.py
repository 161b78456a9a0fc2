"""Shift tracking bounded context: sessions, production and in-shift events."""
