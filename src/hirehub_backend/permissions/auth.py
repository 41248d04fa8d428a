"""
Authentication for the HireHub API.

Identity is established by an external identity provider; this module only
turns a request into a Principal:

1. **Bearer token** (`Authorization: Bearer <token>`)
   - The token is handed to the installed IdentityVerifier, which returns the
     caller's external identity or None.
   - The default verifier trusts an upstream auth gateway: the bearer must
     equal GATEWAY_SHARED_SECRET and the identity comes from `X-User-Identity`.
   - Deployments with their own token format install a verifier with
     `set_identity_verifier`.

2. **Development mode** (`DISABLE_AUTH=true`)
   - No credentials are checked. The identity is taken from `X-Dev-Identity`
     or defaults to `dev_user_local`, and dev callers are admins.

Every authenticated identity gets a local user row (placeholder on first
sight) so sessions can reference it.
"""

import hmac
import logging
from typing import Callable, Optional

from fastapi import Request
from fastapi.security.utils import get_authorization_scheme_param

from hirehub_backend.database import get_db
from hirehub_backend.exceptions import UnauthorizedException
from hirehub_backend.permissions.principal import Principal
from hirehub_backend.repositories.user_repo import UserRepository
from hirehub_backend.settings import settings

logger = logging.getLogger(__name__)

DEV_IDENTITY = "dev_user_local"
DEV_IDENTITY_HEADER = "X-Dev-Identity"
GATEWAY_IDENTITY_HEADER = "X-User-Identity"

IdentityVerifier = Callable[[str, Request], Optional[str]]


def gateway_identity_verifier(token: str, request: Request) -> Optional[str]:
    """Accept the identity asserted by the auth gateway when the shared secret matches."""
    secret = settings.GATEWAY_SHARED_SECRET
    if not secret:
        return None

    if not hmac.compare_digest(token.encode(), secret.encode()):
        return None

    identity = request.headers.get(GATEWAY_IDENTITY_HEADER, "").strip()
    return identity or None


_identity_verifier: IdentityVerifier = gateway_identity_verifier


def set_identity_verifier(verifier: Optional[IdentityVerifier]) -> None:
    """Install a token verifier; None restores the gateway verifier."""
    global _identity_verifier
    _identity_verifier = verifier or gateway_identity_verifier


def parse_bearer_token(request: Request) -> str:
    """Extract the bearer token or raise 401."""
    authorization = request.headers.get("Authorization")
    if not authorization:
        raise UnauthorizedException("No authorization provided")

    scheme, param = get_authorization_scheme_param(authorization)

    if not param or scheme.lower() != "bearer":
        raise UnauthorizedException("Invalid authorization format")

    return param


def build_principal(identity: str) -> Principal:
    """Upsert the local user for `identity` and resolve admin rights."""
    with next(get_db()) as db:
        user = UserRepository(db).get_or_create_placeholder(identity)
        is_admin = bool(user.is_admin) or identity in settings.ADMIN_IDENTITIES

        return Principal(user_id=user.id, identity=user.identity, is_admin=is_admin)


async def get_current_principal(request: Request) -> Principal:
    """
    Main dependency for getting the current authenticated principal.

    Raises:
        UnauthorizedException: No or unverifiable credentials
    """
    if settings.DISABLE_AUTH:
        identity = request.headers.get(DEV_IDENTITY_HEADER, "").strip() or DEV_IDENTITY
        principal = build_principal(identity)
        return principal.model_copy(update={"is_admin": True})

    token = parse_bearer_token(request)

    identity = _identity_verifier(token, request)
    if not identity:
        logger.warning(f"Rejected bearer token on {request.method} {request.url.path}")
        raise UnauthorizedException("Unauthorized - invalid token")

    principal = build_principal(identity)
    request.state.user_id = principal.user_id
    return principal

