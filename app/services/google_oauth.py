"""Google OAuth 2.0 authorization-code flow."""
from urllib.parse import urlencode

import httpx

AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"


class OAuthError(Exception):
    pass


class GoogleOAuthClient:
    def __init__(self, client_id: str, client_secret: str, redirect_uri: str, timeout: float = 10.0):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def authorization_url(self) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": "openid email profile",
            "access_type": "offline",
            "prompt": "consent",
        }
        return f"{AUTH_URL}?{urlencode(params)}"

    def fetch_user(self, code: str) -> dict:
        """Exchange the code and return Google's userinfo ({id, email, name, picture, ...})."""
        try:
            with httpx.Client(timeout=self.timeout) as client:
                tokens = client.post(
                    TOKEN_URL,
                    data={
                        "code": code,
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "redirect_uri": self.redirect_uri,
                        "grant_type": "authorization_code",
                    },
                ).json()
                access_token = tokens.get("access_token")
                if not access_token:
                    raise OAuthError(f"Failed to get access token: {tokens.get('error') or tokens}")
                info = client.get(USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"}).json()
        except (httpx.HTTPError, ValueError) as e:
            raise OAuthError(f"Google request failed: {e}") from e
        if not info.get("email") or not info.get("id"):
            raise OAuthError("Failed to get user info")
        return info
