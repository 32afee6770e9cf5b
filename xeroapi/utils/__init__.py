"""Shared utility functions."""

from .date_utils import is_date_field, snake_to_camel, to_datetime, utcnow

__all__ = ["is_date_field", "snake_to_camel", "to_datetime", "utcnow"]
