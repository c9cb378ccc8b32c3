"""
Access token model.

This module contains the Token model returned by the token endpoint,
together with the parsing of token endpoint responses.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field

# Tokens are treated as expired this long before their actual expiry so
# that they do not lapse while a forwarded request is in flight.
EXPIRY_DELTA = timedelta(seconds=10)


class Token(BaseModel):
    """
    Bearer token issued by the token endpoint.

    A token without an expiry never expires.
    """

    access_token: str = Field(..., description="Opaque bearer token value")
    token_type: str = Field(default="Bearer", description="Token type reported by the endpoint")
    refresh_token: Optional[str] = Field(default=None, description="Refresh token, if issued")
    expiry: Optional[datetime] = Field(default=None, description="Absolute UTC expiry time")

    @classmethod
    def from_response(cls, payload: Mapping[str, Any], now: Optional[datetime] = None) -> "Token":
        """
        Build a token from a parsed token endpoint response.

        Args:
            payload: Decoded JSON or form-encoded response body
            now: Issue time used to resolve ``expires_in`` (defaults to now)

        Returns:
            Token: The parsed token

        Raises:
            ValueError: If ``expires_in`` is not a usable number of seconds
        """
        expiry = None
        expires_in = payload.get("expires_in")
        if expires_in not in (None, ""):
            try:
                seconds = int(expires_in)
                if seconds:
                    expiry = (now or datetime.now(timezone.utc)) + timedelta(seconds=seconds)
            except (TypeError, OverflowError) as e:
                raise ValueError(f"invalid expires_in {expires_in!r}") from e

        return cls(
            access_token=payload.get("access_token") or "",
            token_type=payload.get("token_type") or "Bearer",
            refresh_token=payload.get("refresh_token") or None,
            expiry=expiry
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expiry is None:
            return False
        return self.expiry - EXPIRY_DELTA < (now or datetime.now(timezone.utc))

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        """A token is usable while it has a value and has not (nearly) expired."""
        return bool(self.access_token) and not self.is_expired(now)
