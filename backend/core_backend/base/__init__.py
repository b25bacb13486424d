"""
Core backend base components.

Shared serializer plumbing used by every app for state rendering and input
validation.
"""

from .serializers import BaseModelSerializer, validate_input

__all__ = [
    'BaseModelSerializer',
    'validate_input',
]
