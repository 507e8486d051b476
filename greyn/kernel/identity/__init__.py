"""
Portal identity: password hashing, JWT sessions and per-role signup/login.
"""

from greyn.kernel.identity.identity_service import IdentityService
from greyn.kernel.identity.jwt import JWTManager, TokenPair, get_jwt_manager, verify_access_token
from greyn.kernel.identity.password import MIN_PASSWORD_LENGTH, hash_password, verify_password

__all__ = [
    "IdentityService",
    "JWTManager",
    "MIN_PASSWORD_LENGTH",
    "TokenPair",
    "get_jwt_manager",
    "hash_password",
    "verify_access_token",
    "verify_password",
]
