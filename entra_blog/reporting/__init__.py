"""Reporting package — run records for automations."""

from .json_export import export_json

__all__ = ["export_json"]
