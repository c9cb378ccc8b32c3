"""
OAuth2 token endpoint client.

Shared by the client-credentials token source and the token exchanger:
builds the form-encoded token request and turns the endpoint's response
into a Token or a TokenEndpointError.
"""

from typing import Any, Dict, Mapping, Optional, Sequence
from urllib.parse import parse_qsl

import httpx

from .exceptions import TokenEndpointError
from .models import Token


GRANT_TYPE_CLIENT_CREDENTIALS = "client_credentials"

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "text/plain")


def build_token_form(
    client_id: str,
    client_secret: str,
    scopes: Sequence[str],
    endpoint_params: Optional[Mapping[str, str]] = None
) -> Dict[str, str]:
    """
    Build the form body of a token request.

    Starts from a client-credentials grant; ``endpoint_params`` are
    applied on top and may override ``grant_type``. Client credentials
    are sent in the body, each only when non-empty.

    Args:
        client_id: Client ID, omitted when empty
        client_secret: Client secret, omitted when empty
        scopes: Requested scopes, joined with spaces when non-empty
        endpoint_params: Extra form parameters

    Returns:
        Dict[str, str]: Form fields in request order
    """
    form = {"grant_type": GRANT_TYPE_CLIENT_CREDENTIALS}
    if scopes:
        form["scope"] = " ".join(scopes)
    if endpoint_params:
        form.update(endpoint_params)
    if client_id:
        form["client_id"] = client_id
    if client_secret:
        form["client_secret"] = client_secret
    return form


async def request_token(http_client: httpx.AsyncClient, token_url: str, form: Mapping[str, str]) -> Token:
    """
    POST a token request and parse the response.

    Args:
        http_client: Token endpoint transport (carries the TLS settings)
        token_url: Token endpoint URL
        form: Form fields, see build_token_form

    Returns:
        Token: Token issued by the endpoint

    Raises:
        TokenEndpointError: On transport failure, non-2xx status or an
            unusable response body
    """
    try:
        response = await http_client.post(
            token_url,
            data=dict(form),
            headers={"Accept": "application/json"}
        )
    except httpx.HTTPError as e:
        raise TokenEndpointError(
            f"Unable to reach token endpoint: {e}",
            detail=str(e)
        ) from e

    if not 200 <= response.status_code < 300:
        detail = _parse_error_response(response)
        raise TokenEndpointError(
            f"Token endpoint returned HTTP {response.status_code}: {detail}",
            status_code=response.status_code,
            detail=detail
        )

    try:
        payload = _parse_token_response(response)
        token = Token.from_response(payload)
    except ValueError as e:
        raise TokenEndpointError(
            f"Cannot parse token endpoint response: {e}",
            status_code=response.status_code,
            detail=str(e)
        ) from e

    if not token.access_token:
        raise TokenEndpointError(
            "Token endpoint response missing access_token",
            status_code=response.status_code,
            detail="missing_access_token"
        )

    return token


def _parse_token_response(response: httpx.Response) -> Dict[str, Any]:
    content_type = response.headers.get("content-type", "").split(";")[0].strip().lower()
    if content_type in FORM_CONTENT_TYPES:
        return dict(parse_qsl(response.text))

    payload = response.json()
    if not isinstance(payload, dict):
        raise ValueError("token response is not a JSON object")
    return payload


def _parse_error_response(response: httpx.Response) -> str:
    """
    Parse an OAuth2 error response.

    Returns:
        str: ``error: error_description`` or the raw body
    """
    try:
        error_data = response.json()
        error = error_data.get("error", "unknown_error")
        error_description = error_data.get("error_description", "No description provided")
        return f"{error}: {error_description}"
    except Exception:
        return response.text or f"HTTP {response.status_code}"
