"""Provider access tokens.

Tokens are obtained outside this tool (OAuth flows are not implemented here)
and stored as JSON under ``<grit_dir>/credentials/<provider>.json``. The
``GRIT_SPOTIFY_TOKEN`` and ``GRIT_YOUTUBE_TOKEN`` environment variables take
precedence over the files.
"""

import json
import logging
import os
import time
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from ..core.errors import AuthExpired
from ..models import ProviderKind
from ..storage import write_atomic

logger = logging.getLogger(__name__)

# Treat tokens this close to expiry as expired
EXPIRY_MARGIN_SECONDS = 60


class OAuthToken(BaseModel):
    """Stored OAuth token."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None  # unix timestamp
    token_type: str = "Bearer"
    scope: Optional[str] = None

    def is_expired(self, now: Optional[float] = None) -> bool:
        """Check whether the token is expired or about to expire."""
        if self.expires_at is None:
            return False
        now = time.time() if now is None else now
        return now >= self.expires_at - EXPIRY_MARGIN_SECONDS


def token_env_var(provider: ProviderKind) -> str:
    """Name of the environment variable overriding a provider's token file."""
    return f"GRIT_{provider.value.upper()}_TOKEN"


class CredentialStore:
    """Reads and writes provider tokens."""

    def __init__(self, credentials_dir: Path) -> None:
        """Initialize store.

        Args:
            credentials_dir: Directory holding ``<provider>.json`` files
        """
        self.credentials_dir = credentials_dir

    def path_for(self, provider: ProviderKind) -> Path:
        """Token file path for a provider."""
        return self.credentials_dir / f"{provider.value}.json"

    def load(self, provider: ProviderKind) -> Optional[OAuthToken]:
        """Load a provider's token, None if none is configured."""
        from_env = os.getenv(token_env_var(provider))
        if from_env:
            return OAuthToken(access_token=from_env)

        path = self.path_for(provider)
        if not path.exists():
            return None
        try:
            return OAuthToken.model_validate(json.loads(path.read_text(encoding="utf-8")))
        except ValueError as e:
            raise AuthExpired(f"Unreadable credentials file {path}: {e}") from e

    def save(self, provider: ProviderKind, token: OAuthToken) -> Path:
        """Store a provider's token with owner-only permissions."""
        path = self.path_for(provider)
        write_atomic(path, token.model_dump_json(indent=2))
        os.chmod(path, 0o600)
        logger.info("Saved %s credentials to %s", provider.value, path)
        return path

    def delete(self, provider: ProviderKind) -> bool:
        """Delete a provider's token file.

        Returns:
            True if a file was deleted
        """
        path = self.path_for(provider)
        if not path.exists():
            return False
        path.unlink()
        return True

    def get_valid_token(self, provider: ProviderKind) -> str:
        """Get a usable access token.

        Raises:
            AuthExpired: If no token is configured or it has expired
        """
        token = self.load(provider)
        if token is None:
            raise AuthExpired(
                f"No {provider.value} credentials. Set {token_env_var(provider)} "
                f"or write {self.path_for(provider)}."
            )
        if token.is_expired():
            raise AuthExpired(
                f"{provider.value} token expired. Refresh it and try again."
            )
        return token.access_token
