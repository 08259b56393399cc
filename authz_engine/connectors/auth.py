"""
Base URL and OAuth access token resolution.

Either a password grant against SASLogon (when user and password are
configured) or the token cached by the sas-admin CLI in
~/.sas/credentials.json is used.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

import requests

from ..config import Settings
from ..errors import AuthenticationError, ConfigurationError

logger = logging.getLogger(__name__)


def _read_profile(path: Path, profile: str) -> Dict[str, Any]:
    """Read one profile section from a sas-admin CLI JSON file."""
    try:
        with open(path, encoding="utf-8") as f:
            content = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e

    section = content.get(profile) if isinstance(content, dict) else None
    if not isinstance(section, dict):
        raise ConfigurationError(f"Profile {profile} not found in {path}")
    return section


def resolve_base_url(settings: Settings) -> str:
    """
    Return the platform base URL.

    Args:
        settings: Run settings

    Returns:
        Base URL without trailing slash

    Raises:
        ConfigurationError: If neither settings nor the CLI profile provide one
    """
    if settings.base_url:
        return settings.base_url

    logger.debug("Retrieving base URL from sas-admin CLI profile")
    section = _read_profile(settings.sas_dir / "config.json", settings.profile)
    endpoint = section.get("sas-endpoint")
    if not endpoint:
        raise ConfigurationError(f"No sas-endpoint in profile {settings.profile}")
    return str(endpoint).rstrip("/")


def _parse_expiry(value: str) -> datetime:
    expiry = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=timezone.utc)
    return expiry


def get_access_token(settings: Settings, base_url: str) -> str:
    """
    Acquire an OAuth access token.

    Args:
        settings: Run settings
        base_url: Resolved platform base URL

    Returns:
        Bearer access token

    Raises:
        AuthenticationError: If the grant fails or the cached token expired
    """
    if settings.user and settings.password:
        logger.debug(f"Requesting OAuth access token for {settings.user}")
        try:
            response = requests.post(
                f"{base_url}/SASLogon/oauth/token",
                data={
                    "grant_type": "password",
                    "username": settings.user,
                    "password": settings.password,
                },
                auth=(settings.client_id, settings.client_secret),
                headers={"Accept": "application/json"},
                verify=settings.valid_tls,
            )
        except requests.RequestException as e:
            raise AuthenticationError(f"OAuth access token cannot be acquired: {e}") from e

        if response.status_code != 200:
            raise AuthenticationError(
                f"OAuth access token cannot be acquired: HTTP {response.status_code}"
            )
        try:
            return response.json()["access_token"]
        except (ValueError, KeyError) as e:
            raise AuthenticationError("OAuth token response has no access_token") from e

    logger.debug("Retrieving OAuth access token from sas-admin CLI credentials")
    try:
        section = _read_profile(settings.sas_dir / "credentials.json", settings.profile)
    except ConfigurationError as e:
        raise AuthenticationError(str(e)) from e

    token = section.get("access-token")
    if not token:
        raise AuthenticationError(f"No access-token in profile {settings.profile}")

    expiry_raw = section.get("expiry")
    if expiry_raw:
        try:
            expiry = _parse_expiry(str(expiry_raw))
        except ValueError as e:
            raise AuthenticationError(f"Unparseable token expiry: {expiry_raw}") from e
        if datetime.now(timezone.utc) > expiry:
            raise AuthenticationError(
                f"OAuth access token expired at {expiry.isoformat()}. "
                "Please refresh using the 'sas-admin auth login' command"
            )
    return token
