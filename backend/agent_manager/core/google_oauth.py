"""Google OAuth 2.0 authorization-code flow.

The consent URL is built locally; the code is exchanged at Google's token endpoint
with httpx, and the returned ID token is verified against Google's JWKS with PyJWT.
"""

from dataclasses import dataclass
from functools import lru_cache
from urllib.parse import urlencode

import httpx
import jwt as pyjwt
from jwt import PyJWKClient

from agent_manager.core.exceptions import OAuthError

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_JWKS_URL = "https://www.googleapis.com/oauth2/v3/certs"
GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")
GOOGLE_SCOPES = [
    "openid",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
]


@lru_cache
def get_google_jwks_client() -> PyJWKClient:
    """Cached JWKS client for Google's ID token signing keys."""
    return PyJWKClient(GOOGLE_JWKS_URL, cache_keys=True, lifespan=300)


@dataclass(frozen=True)
class GoogleProfile:
    """Identity claims taken from a verified Google ID token."""

    sub: str
    email: str
    name: str | None = None
    picture: str | None = None


class GoogleOAuthClient:
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        jwks_client: PyJWKClient | None = None,
        timeout: float = 10.0,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.jwks_client = jwks_client
        self.timeout = timeout

    def authorization_url(self) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(GOOGLE_SCOPES),
            "access_type": "offline",
            "prompt": "consent",
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> GoogleProfile:
        """Exchange an authorization code and return the verified profile.

        Raises:
            OAuthError: token endpoint failure or invalid ID token
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    GOOGLE_TOKEN_URL,
                    data={
                        "code": code,
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "redirect_uri": self.redirect_uri,
                        "grant_type": "authorization_code",
                    },
                )
                response.raise_for_status()
                tokens = response.json()
        except httpx.HTTPError as exc:
            raise OAuthError(f"Token exchange failed: {exc}") from exc

        id_token = tokens.get("id_token")
        if not id_token:
            raise OAuthError("Token response has no id_token")
        return self.verify_id_token(id_token)

    def verify_id_token(self, id_token: str) -> GoogleProfile:
        jwks_client = self.jwks_client or get_google_jwks_client()
        try:
            signing_key = jwks_client.get_signing_key_from_jwt(id_token)
            payload = pyjwt.decode(
                id_token,
                signing_key.key,
                algorithms=["RS256"],
                audience=self.client_id,
                options={"require": ["sub", "exp", "iss", "aud"]},
            )
        except pyjwt.PyJWTError as exc:
            raise OAuthError(f"Invalid ID token: {exc}") from exc

        if payload.get("iss") not in GOOGLE_ISSUERS:
            raise OAuthError("Invalid issuer (iss mismatch)")

        email = payload.get("email")
        if not email:
            raise OAuthError("ID token has no email claim")

        return GoogleProfile(
            sub=payload["sub"],
            email=email,
            name=payload.get("name"),
            picture=payload.get("picture"),
        )
