"""Generic admin REST layer over registered SQLAlchemy models."""

__version__ = "0.1.0"
