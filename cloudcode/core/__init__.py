"""
Core utilities for the Cloud Code backend.

This module provides foundational functionality:
- Security (JWT, password hashing)
- Custom exceptions
"""

__all__ = [
    'security',
    'exceptions',
]
