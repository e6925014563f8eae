import os
import time
import logging
from dataclasses import dataclass
from typing import Dict, Optional

import requests
from jose import jwk, jwt
from jose.exceptions import JOSEError
from jose.utils import base64url_decode

from .errors import Unauthenticated

logger = logging.getLogger(__name__)

GOOGLE_JWKS_URL = os.getenv("GOOGLE_JWKS_URL", "https://www.googleapis.com/oauth2/v3/certs")
GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")

jwks_cache: Optional[Dict] = None
jwks_cache_time: float = 0
JWKS_CACHE_DURATION = 3600


@dataclass
class GoogleIdentity:
    email: str
    name: str
    picture: Optional[str]


def get_jwks() -> Dict:
    """Fetch and cache Google's signing keys"""
    global jwks_cache, jwks_cache_time

    current_time = time.time()

    if jwks_cache and (current_time - jwks_cache_time) < JWKS_CACHE_DURATION:
        return jwks_cache

    response = requests.get(GOOGLE_JWKS_URL, timeout=10)
    response.raise_for_status()
    jwks_cache = response.json()
    jwks_cache_time = current_time

    return jwks_cache


def verify_google_credential(credential: str) -> GoogleIdentity:
    """
    Verify a Google Sign-In ID token
    Returns the identity it vouches for
    Raises Unauthenticated if invalid
    """
    client_id = os.getenv("GOOGLE_CLIENT_ID")
    if not client_id:
        logger.error("GOOGLE_CLIENT_ID is not configured, refusing Google login")
        raise Unauthenticated("Google authentication failed")
    if not credential:
        raise Unauthenticated("Google authentication failed")

    try:
        headers = jwt.get_unverified_headers(credential)
        kid = headers["kid"]

        key = None
        for jwk_key in get_jwks()["keys"]:
            if jwk_key["kid"] == kid:
                key = jwk_key
                break

        if not key:
            raise Unauthenticated("Public key not found in JWKs")

        public_key = jwk.construct(key, algorithm=key.get("alg", "RS256"))

        message, encoded_signature = credential.rsplit(".", 1)
        decoded_signature = base64url_decode(encoded_signature.encode())

        if not public_key.verify(message.encode(), decoded_signature):
            raise Unauthenticated("Invalid token signature")

        claims = jwt.get_unverified_claims(credential)

        if time.time() > claims["exp"]:
            raise Unauthenticated("Token has expired")

        if claims.get("iss") not in GOOGLE_ISSUERS:
            raise Unauthenticated("Invalid token issuer")

        if claims.get("aud") != client_id:
            raise Unauthenticated("Invalid token audience")

        # Google sends the flag as a bool, older tokens as a string
        if str(claims.get("email_verified")).lower() != "true":
            raise Unauthenticated("Google email is not verified")

        email = claims["email"]
        return GoogleIdentity(
            email=email,
            name=claims.get("name") or email.split("@")[0],
            picture=claims.get("picture"),
        )

    except Unauthenticated as e:
        logger.warning(f"Google login rejected: {e.detail}")
        raise
    except (JOSEError, KeyError, TypeError, ValueError) as e:
        logger.warning(f"Malformed Google credential: {e}")
        raise Unauthenticated("Google authentication failed")
    except requests.RequestException as e:
        logger.error(f"Could not fetch Google signing keys: {e}")
        raise Unauthenticated("Google authentication failed")
