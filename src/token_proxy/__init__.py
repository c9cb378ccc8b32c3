"""Authenticating reverse proxy attaching OAuth2 bearer tokens to upstream requests."""

__version__ = "0.1.0"
