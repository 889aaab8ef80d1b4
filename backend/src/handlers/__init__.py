"""Lambda handlers for the Testimonial Wall API."""

from .api_handler import api_handler

__all__ = ["api_handler"]
