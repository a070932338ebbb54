"""Logging, errors and response shaping shared by the admin layer."""
