import logging
from typing import Dict, Optional
from urllib.parse import urlencode

import requests
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

from app.config import settings

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_SCOPES = "openid email profile"


def build_authorization_url(state: str) -> str:
    params = {
        "client_id": settings.google_client_id,
        "redirect_uri": settings.google_redirect_url,
        "response_type": "code",
        "scope": GOOGLE_SCOPES,
        "state": state,
        "access_type": "offline",
    }
    return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"


def exchange_code(code: str) -> Optional[Dict]:
    """Swap an authorization code for Google's token response."""
    try:
        response = requests.post(
            GOOGLE_TOKEN_URL,
            data={
                "code": code,
                "client_id": settings.google_client_id,
                "client_secret": settings.google_client_secret,
                "redirect_uri": settings.google_redirect_url,
                "grant_type": "authorization_code",
            },
            timeout=15,
        )
    except requests.RequestException as e:
        logger.warning("Google token exchange failed: %s", e)
        return None

    if response.status_code != 200:
        logger.warning("Google token exchange returned %s", response.status_code)
        return None

    data = response.json()
    if not data.get("id_token"):
        logger.warning("Google token response carried no id_token")
        return None
    return data


def verify_google_token(token: str) -> Optional[Dict[str, str]]:

    try:

        id_info = id_token.verify_oauth2_token(
            token,
            google_requests.Request(),
            settings.google_client_id
        )

        if id_info['aud'] != settings.google_client_id:
            logger.warning("Token audience mismatch")
            return None

        if not id_info.get("email"):
            logger.warning("Google token carried no email")
            return None

        return {
            "sub": id_info.get("sub"),
            "email": id_info.get("email"),
            "name": id_info.get("name", "Google User"),
            "picture": id_info.get("picture")
        }

    except ValueError as e:
        logger.warning("Google token verification failed: %s", e)
        return None
