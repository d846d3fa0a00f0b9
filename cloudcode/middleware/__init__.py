"""
Middleware package for the Cloud Code API.

Contains CORS configuration and error handlers.
"""

from cloudcode.middleware.cors import configure_cors
from cloudcode.middleware.error_handlers import register_error_handlers

__all__ = [
    "configure_cors",
    "register_error_handlers",
]
