"""
JWT helpers for utilkit, built on PyJWT.

HMAC tokens are signed with a shared secret (str or bytes), asymmetric
tokens with a ``cryptography`` private key or a PEM string. Lifetimes,
the header prefix and the refresh grace period come from
``Config.token``.
"""

import base64
import binascii
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Tuple, Union

import jwt
from cryptography.hazmat.primitives.asymmetric import rsa

from ..core.config import get_config
from ..errors import TokenExpiredError, TokenMalformedError, UtilError, ValidationError
from .types import (
    ASYMMETRIC_ALGORITHMS, HMAC_ALGORITHMS, MIN_HMAC_KEY_BYTES,
    TokenType, TokenValidationResult,
)

logger = logging.getLogger(__name__)

Secret = Union[str, bytes]
Expiration = Union[int, float, timedelta]


def _require(value: Any, name: str) -> None:
    if value is None or (isinstance(value, (str, bytes)) and not value.strip()):
        raise ValidationError(f"{name} cannot be None or empty", field=name)


def _key_bytes(secret: Secret, algorithm: str = "HS256") -> bytes:
    _require(secret, "secret")
    key = secret.encode("utf-8") if isinstance(secret, str) else bytes(secret)
    minimum = MIN_HMAC_KEY_BYTES.get(algorithm, 32)
    if len(key) < minimum:
        raise ValidationError(
            f"Secret key for {algorithm} must be at least {minimum} bytes, got {len(key)}",
            field="secret")
    return key


def _to_timedelta(expiration: Expiration) -> timedelta:
    """Milliseconds (int/float) or a timedelta."""
    if isinstance(expiration, timedelta):
        return expiration
    if isinstance(expiration, bool) or not isinstance(expiration, (int, float)):
        raise ValidationError("Expiration must be milliseconds or a timedelta", field="expiration")
    return timedelta(milliseconds=expiration)


def _build_payload(subject: str, claims: Optional[Dict[str, Any]],
                   expiration: Expiration) -> Dict[str, Any]:
    now = datetime.now(timezone.utc)
    payload = dict(claims or {})
    payload.update({
        "sub": subject,
        "iat": now,
        "exp": now + _to_timedelta(expiration),
    })
    return payload


def _translate(e: jwt.PyJWTError) -> UtilError:
    if isinstance(e, jwt.ExpiredSignatureError):
        return TokenExpiredError(cause=e)
    if isinstance(e, jwt.InvalidSignatureError):
        return TokenMalformedError("Invalid JWT signature", cause=e)
    if isinstance(e, jwt.InvalidAlgorithmError):
        return TokenMalformedError("Unsupported JWT token format", cause=e)
    if isinstance(e, jwt.DecodeError):
        return TokenMalformedError("Malformed JWT token", cause=e)
    return TokenMalformedError(f"JWT token validation failed: {e}", cause=e)


def _decode(key: Any, token: str, algorithms, verify_exp: bool = True) -> Dict[str, Any]:
    _require(token, "token")
    try:
        return jwt.decode(
            token,
            key,
            algorithms=list(algorithms),
            leeway=get_config().token.clock_skew,
            options={"verify_exp": verify_exp, "verify_aud": False},
        )
    except jwt.PyJWTError as e:
        raise _translate(e) from e


def _decode_hmac(secret: Secret, token: str, verify_exp: bool = True) -> Dict[str, Any]:
    _require(secret, "secret")
    key = secret.encode("utf-8") if isinstance(secret, str) else secret
    return _decode(key, token, HMAC_ALGORITHMS, verify_exp)


# Issuance

def generate_token(secret: Secret, subject: str, claims: Optional[Dict[str, Any]] = None,
                   expiration: Expiration = None) -> str:
    """
    Sign an HS256 token for ``subject``.

    ``expiration`` is in milliseconds or a timedelta and may be negative;
    it defaults to the access token lifetime.
    """
    return generate_token_with_algorithm(secret, subject, claims, expiration, "HS256")


def generate_access_token(secret: Secret, subject: str,
                          claims: Optional[Dict[str, Any]] = None) -> str:
    return generate_token(secret, subject, claims, get_config().token.access_token_lifetime)


def generate_refresh_token(secret: Secret, subject: str) -> str:
    """Refresh token carrying ``token_type=refresh``."""
    return generate_token(secret, subject, {"token_type": TokenType.REFRESH.value},
                          get_config().token.refresh_token_lifetime)


def generate_token_with_algorithm(secret: Secret, subject: str,
                                  claims: Optional[Dict[str, Any]] = None,
                                  expiration: Expiration = None,
                                  algorithm: str = "HS256") -> str:
    if algorithm not in HMAC_ALGORITHMS:
        raise ValidationError(f"Unsupported HMAC algorithm: {algorithm}", field="algorithm")
    key = _key_bytes(secret, algorithm)
    _require(subject, "subject")
    if expiration is None:
        expiration = get_config().token.access_token_lifetime
    return jwt.encode(_build_payload(subject, claims, expiration), key, algorithm=algorithm)


def generate_token_with_asymmetric_key(private_key: Any, subject: str,
                                       claims: Optional[Dict[str, Any]] = None,
                                       expiration: Expiration = None,
                                       algorithm: str = "RS256") -> str:
    """Sign with an RSA/EC private key (object or PEM)."""
    if private_key is None:
        raise ValidationError("Private key cannot be None", field="private_key")
    _require(subject, "subject")
    if algorithm not in ASYMMETRIC_ALGORITHMS:
        raise ValidationError(f"Unsupported asymmetric algorithm: {algorithm}", field="algorithm")
    if expiration is None:
        expiration = get_config().token.access_token_lifetime
    try:
        return jwt.encode(_build_payload(subject, claims, expiration), private_key,
                          algorithm=algorithm)
    except (jwt.PyJWTError, ValueError, TypeError) as e:
        raise ValidationError(f"Cannot sign token with the given key: {e}",
                              field="private_key", cause=e)


# Validation

def validate_token(secret: Secret, token: str) -> bool:
    try:
        _decode_hmac(secret, token)
        return True
    except UtilError as e:
        logger.debug(f"Token validation failed: {e}")
        return False


def validate_token_with_asymmetric_key(public_key: Any, token: str) -> bool:
    if public_key is None:
        raise ValidationError("Public key cannot be None", field="public_key")
    _require(token, "token")
    try:
        _decode(public_key, token, ASYMMETRIC_ALGORITHMS)
        return True
    except UtilError as e:
        logger.debug(f"Token validation failed: {e}")
        return False


def validate_token_with_details(secret: Secret, token: str) -> TokenValidationResult:
    """Validate and report why a token was rejected."""
    if secret is None or token is None or not str(token).strip():
        return TokenValidationResult(False, "JWT token is empty or null")
    try:
        _decode_hmac(secret, token)
        return TokenValidationResult(True, "Valid")
    except ValidationError:
        return TokenValidationResult(False, "JWT token is empty or null")
    except UtilError as e:
        return TokenValidationResult(False, e.message)


# Claims

def extract_claims(secret: Secret, token: str) -> Dict[str, Any]:
    """Verified claims; raises TokenExpiredError or TokenMalformedError."""
    return _decode_hmac(secret, token)


def extract_claims_safely(secret: Secret, token: str) -> Optional[Dict[str, Any]]:
    try:
        return extract_claims(secret, token)
    except UtilError as e:
        logger.warning(f"Could not extract claims: {e}")
        return None


def extract_claim(secret: Secret, token: str,
                  claim: Union[str, Callable[[Dict[str, Any]], Any]],
                  cls: Optional[type] = None) -> Any:
    """
    Read one claim by name, or apply a resolver to all claims.
    With ``cls`` the value must be an instance of it.
    """
    if claim is None or (isinstance(claim, str) and not claim.strip()):
        raise ValidationError("Claim key cannot be None or empty", field="claim")
    claims = extract_claims(secret, token)
    value = claim(claims) if callable(claim) else claims.get(claim)
    if cls is not None and value is not None and not isinstance(value, cls):
        raise ValidationError(
            f"Claim {claim!r} is {type(value).__name__}, expected {cls.__name__}", field="claim")
    return value


def extract_claim_or_default(secret: Secret, token: str, claim: str,
                             default: Any = None, cls: Optional[type] = None) -> Any:
    try:
        value = extract_claim(secret, token, claim, cls)
    except UtilError as e:
        logger.debug(f"Could not extract claim {claim!r}: {e}")
        return default
    return default if value is None else value


def extract_subject(secret: Secret, token: str) -> Optional[str]:
    return extract_claim(secret, token, "sub")


def extract_subject_safely(secret: Secret, token: str) -> Optional[str]:
    try:
        return extract_subject(secret, token)
    except UtilError as e:
        logger.warning(f"Could not extract subject: {e}")
        return None


def decode_token_without_validation(token: str) -> Dict[str, Any]:
    """Payload of a token without checking its signature or expiry."""
    _require(token, "token")
    try:
        return jwt.decode(token, options={"verify_signature": False, "verify_exp": False})
    except jwt.PyJWTError as e:
        raise TokenMalformedError(f"Failed to decode token: {e}", cause=e) from e


# Expiry

def get_expiration_date(secret: Secret, token: str) -> Optional[datetime]:
    """UTC expiry of a correctly signed token, even if it already expired."""
    claims = _decode_hmac(secret, token, verify_exp=False)
    exp = claims.get("exp")
    if exp is None:
        return None
    return datetime.fromtimestamp(exp, tz=timezone.utc)


def is_token_expired(secret: Secret, token: str) -> bool:
    expiration = get_expiration_date(secret, token)
    return expiration is not None and expiration <= datetime.now(timezone.utc)


def get_token_remaining_time(secret: Secret, token: str) -> int:
    """Milliseconds until expiry; 0 for expired tokens."""
    expiration = get_expiration_date(secret, token)
    if expiration is None:
        return 0
    remaining = expiration - datetime.now(timezone.utc)
    return max(0, int(remaining.total_seconds() * 1000))


def is_token_expiring_soon(secret: Secret, token: str, buffer: Expiration) -> bool:
    """True when the token expires within ``buffer`` (ms or timedelta) or already has."""
    return get_token_remaining_time(secret, token) < _to_timedelta(buffer).total_seconds() * 1000


def refresh_token(secret: Secret, token: str, expiration: Expiration = None) -> str:
    """
    Re-issue a token with the same claims and a new lifetime.

    Expired tokens are accepted within the refresh grace period; beyond it
    ``TokenExpiredError`` is raised.
    """
    config = get_config().token
    _require(token, "token")
    try:
        algorithm = jwt.get_unverified_header(token).get("alg", "HS256")
    except jwt.PyJWTError as e:
        raise _translate(e) from e
    if algorithm not in HMAC_ALGORITHMS:
        raise TokenMalformedError("Unsupported JWT token format")
    claims = _decode_hmac(secret, token, verify_exp=False)

    exp = claims.get("exp")
    if exp is not None:
        expired_for = datetime.now(timezone.utc) - datetime.fromtimestamp(exp, tz=timezone.utc)
        if expired_for > config.refresh_grace_period:
            raise TokenExpiredError("Token expired beyond refresh grace period")
        if expired_for > timedelta(0):
            logger.debug("Refreshing an expired token")

    subject = claims.pop("sub", None)
    claims.pop("iat", None)
    claims.pop("exp", None)
    if expiration is None:
        expiration = config.access_token_lifetime
    return generate_token_with_algorithm(secret, subject, claims, expiration, algorithm)


# Headers

def extract_token_from_header(auth_header: Optional[str]) -> Optional[str]:
    """Token from an ``Authorization: Bearer <token>`` value, or None."""
    prefix = get_config().token.token_prefix
    if auth_header and auth_header.startswith(prefix):
        token = auth_header[len(prefix):].strip()
        if token:
            return token
    return None


def create_authorization_header(token: str) -> str:
    _require(token, "token")
    return get_config().token.token_prefix + token


# Keys

def generate_random_secret_key(num_bytes: int = 32) -> str:
    """Base64 encoded random HMAC key."""
    return base64.b64encode(secrets.token_bytes(num_bytes)).decode("ascii")


def generate_rsa_key_pair(key_size: int = 2048) -> Tuple[rsa.RSAPrivateKey, rsa.RSAPublicKey]:
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
    return private_key, private_key.public_key()


def parse_secret_key(base64_secret: str) -> bytes:
    """Decode a base64 HMAC key produced by ``generate_random_secret_key``."""
    _require(base64_secret, "secret")
    try:
        return base64.b64decode(base64_secret, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError(f"Invalid base64 secret key: {e}", field="secret", cause=e)
