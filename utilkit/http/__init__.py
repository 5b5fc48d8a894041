"""
HTTP client for utilkit.
"""

from .client import HttpClient, validate_url

__all__ = ['HttpClient', 'validate_url']
