"""
JWT issuance and validation for utilkit.
"""

from .types import TokenType, TokenValidationResult, HMAC_ALGORITHMS, ASYMMETRIC_ALGORITHMS
from .jwt import (
    generate_token, generate_access_token, generate_refresh_token,
    generate_token_with_algorithm, generate_token_with_asymmetric_key,
    validate_token, validate_token_with_asymmetric_key, validate_token_with_details,
    extract_claims, extract_claims_safely, extract_claim, extract_claim_or_default,
    extract_subject, extract_subject_safely, decode_token_without_validation,
    get_expiration_date, is_token_expired, get_token_remaining_time,
    is_token_expiring_soon, refresh_token, extract_token_from_header,
    create_authorization_header, generate_random_secret_key,
    generate_rsa_key_pair, parse_secret_key,
)

__all__ = [
    'TokenType', 'TokenValidationResult', 'HMAC_ALGORITHMS', 'ASYMMETRIC_ALGORITHMS',
    'generate_token', 'generate_access_token', 'generate_refresh_token',
    'generate_token_with_algorithm', 'generate_token_with_asymmetric_key',
    'validate_token', 'validate_token_with_asymmetric_key', 'validate_token_with_details',
    'extract_claims', 'extract_claims_safely', 'extract_claim', 'extract_claim_or_default',
    'extract_subject', 'extract_subject_safely', 'decode_token_without_validation',
    'get_expiration_date', 'is_token_expired', 'get_token_remaining_time',
    'is_token_expiring_soon', 'refresh_token', 'extract_token_from_header',
    'create_authorization_header', 'generate_random_secret_key',
    'generate_rsa_key_pair', 'parse_secret_key',
]
