from hirehub_backend.permissions.principal import Principal
from hirehub_backend.permissions.auth import (
    IdentityVerifier,
    get_current_principal,
    set_identity_verifier,
)

__all__ = [
    "Principal",
    "IdentityVerifier",
    "get_current_principal",
    "set_identity_verifier",
]
