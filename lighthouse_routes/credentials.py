"""
Credential Store

Loads authentication cookies exported from DevTools / Playwright and matches
them to the domain under audit.

File format:
    {"Cookies": [{"domain": ".example.com", "name": "sid", "value": "...",
                  "path": "/", "secure": true, "httpOnly": true,
                  "sameSite": "no_restriction", "expirationDate": 1767225600}]}
"""

import json
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from lighthouse_routes.errors import AuthError
from lighthouse_routes.models import Credential


COLLECTION_FIELD = "Cookies"


def normalize_same_site(same_site: Optional[str]) -> str:
    """
    Normalize a raw sameSite attribute to Playwright's Strict/Lax/None.

    Chrome exports use "no_restriction" and "unspecified"; anything
    unrecognized (or absent) becomes Lax.
    """
    if not same_site:
        return "Lax"

    lower = same_site.lower()
    if lower == "strict":
        return "Strict"
    if lower == "lax":
        return "Lax"
    if lower in ("none", "no_restriction"):
        return "None"

    return "Lax"


def domain_matches(cookie_domain: str, target_domain: str) -> bool:
    """Exact, dot-prefixed wildcard, or suffix match (permissive)."""
    return (
        cookie_domain == target_domain
        or cookie_domain == f".{target_domain}"
        or target_domain.endswith(cookie_domain)
    )


def to_playwright_cookie(credential: Credential) -> Dict[str, Any]:
    """Convert a credential to BrowserContext.add_cookies() format."""
    cookie = {
        "name": credential.name,
        "value": credential.value,
        "domain": credential.domain,
        "path": credential.path or "/",
        "sameSite": normalize_same_site(credential.same_site_raw),
    }
    if credential.secure is not None:
        cookie["secure"] = bool(credential.secure)
    if credential.http_only is not None:
        cookie["httpOnly"] = bool(credential.http_only)
    # session cookies carry no expiry
    if credential.expires_at_epoch is not None and credential.expires_at_epoch > 0:
        cookie["expires"] = credential.expires_at_epoch
    return cookie


class CredentialStore:
    """Immutable set of stored cookies loaded once per authenticated session."""

    def __init__(self, credentials: List[Credential], source: Optional[str] = None):
        self._credentials = list(credentials)
        self.source = source

    @classmethod
    def load(cls, source_location: str) -> "CredentialStore":
        """
        Load cookies from a JSON export.

        Raises:
            AuthError: file missing, not valid JSON, or no Cookies array
        """
        path = Path(source_location).expanduser().resolve()

        if not path.exists():
            raise AuthError(f"Auth file not found: {path}", cause=str(path))

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise AuthError(f"Failed to load cookies from {path}", cause=e) from e

        records = data.get(COLLECTION_FIELD) if isinstance(data, dict) else None
        if not isinstance(records, list):
            raise AuthError(
                f"Auth file {path} must have a \"{COLLECTION_FIELD}\" array",
                cause=str(path),
            )

        try:
            credentials = [Credential.from_dict(record) for record in records]
        except (AttributeError, TypeError, ValueError) as e:
            raise AuthError(f"Malformed cookie record in {path}", cause=e) from e

        return cls(credentials, source=str(path))

    def is_empty(self) -> bool:
        return not self._credentials

    def count(self) -> int:
        return len(self._credentials)

    def all(self) -> List[Credential]:
        return list(self._credentials)

    def get_by_name(self, name: str) -> Optional[Credential]:
        for credential in self._credentials:
            if credential.name == name:
                return credential
        return None

    def match_domain(self, target_domain: str) -> List[Credential]:
        """Credentials whose domain matches target_domain (see domain_matches)."""
        return [c for c in self._credentials if domain_matches(c.domain, target_domain)]

    def split_expired(self, credentials: List[Credential], now: float = None):
        """Partition credentials into (valid, expired) at `now` (epoch seconds)."""
        now = time.time() if now is None else now
        valid = [c for c in credentials if not c.is_expired(now)]
        expired = [c for c in credentials if c.is_expired(now)]
        return valid, expired
