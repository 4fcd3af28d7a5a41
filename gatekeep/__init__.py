"""Validation, signed cookie sessions, template loading and small web helpers."""

__version__ = "1.0.0"