"""
Middleware package for the application.
"""

from adminrest.middleware.request_id import RequestIDMiddleware

__all__ = [
    "RequestIDMiddleware",
]
