"""Firebase ID-token verification for API routes."""

import logging
import threading
from typing import Optional

import firebase_admin
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials

from ..config import config
from ..functions.callable import AuthContext, HttpsError
from ..utils.error_handlers import ERROR_MESSAGES, ConfigurationError

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

_init_lock = threading.Lock()


def initialize_firebase() -> None:
    """Initialize the Firebase Admin SDK once per process."""
    with _init_lock:
        if firebase_admin._apps:
            return
        if config.FIREBASE_CREDENTIALS:
            cred = credentials.Certificate(config.FIREBASE_CREDENTIALS)
            firebase_admin.initialize_app(cred)
            logger.info("Firebase Admin SDK initialized with service account key")
        else:
            firebase_admin.initialize_app()
            logger.info("Firebase Admin SDK initialized with application default credentials")


def verify_token(token: str) -> AuthContext:
    """
    Verify a Firebase ID token.

    Raises:
        HTTPException(401) when the token is invalid, expired or revoked.
        ConfigurationError when the Admin SDK cannot be initialized.
    """
    try:
        initialize_firebase()
    except (ValueError, OSError) as e:
        logger.error(f"Firebase Admin SDK failed to initialize: {e}")
        raise ConfigurationError(f"Firebase initialization failed: {e}")

    try:
        decoded_token = firebase_auth.verify_id_token(token)
    except firebase_auth.ExpiredIdTokenError as e:
        logger.warning(f"Expired Firebase ID token: {e}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Expired authentication token")
    except (firebase_auth.InvalidIdTokenError, ValueError) as e:
        logger.warning(f"Invalid Firebase ID token: {e}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid authentication token")
    except firebase_auth.CertificateFetchError as e:
        logger.error(f"Could not fetch Firebase certificates: {e}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication failed")

    logger.debug(f"Token verified for user: {decoded_token.get('uid')}")
    return AuthContext(uid=decoded_token["uid"], token=decoded_token)


def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthContext:
    """Dependency: the verified caller, or 401."""
    if creds is None or not creds.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid Authorization header.",
        )
    return verify_token(creds.credentials)


def get_optional_auth(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[AuthContext]:
    """
    Dependency for callable functions: the caller's identity, or None.

    Callables report a missing identity inside their own error envelope, so an
    absent or unusable token is not an HTTP error here.
    """
    if creds is None or not creds.credentials:
        return None
    try:
        return verify_token(creds.credentials)
    except HTTPException:
        return None
    except ConfigurationError:
        raise HttpsError("internal", ERROR_MESSAGES["configuration"])
