"""
Token types for utilkit.auth.
"""

from dataclasses import dataclass
from enum import Enum


class TokenType(Enum):
    """Values of the ``token_type`` claim."""
    ACCESS = "access"
    REFRESH = "refresh"


HMAC_ALGORITHMS = ("HS256", "HS384", "HS512")
ASYMMETRIC_ALGORITHMS = (
    "RS256", "RS384", "RS512",
    "ES256", "ES384", "ES512",
    "PS256", "PS384", "PS512",
)

# Minimum HMAC key size in bytes: the digest size of the algorithm.
MIN_HMAC_KEY_BYTES = {"HS256": 32, "HS384": 48, "HS512": 64}


@dataclass(frozen=True)
class TokenValidationResult:
    """Outcome of a token validation."""
    valid: bool
    message: str

    def __bool__(self) -> bool:
        return self.valid

    def __str__(self) -> str:
        return f"TokenValidationResult(valid={self.valid}, message='{self.message}')"
