"""Utilities for redacting sensitive data from strings."""

import re

# Patterns for sensitive data that should be redacted
SENSITIVE_PATTERNS = [
    # Pull secret auth blobs
    (r'("auth"\s*:\s*)"[^"]*"', r'\1"REDACTED"'),
    # Tokens, secrets, passwords
    (r'(token|secret|password)([=:"\s]+)\S+', r'\1\2REDACTED'),
    # Bearer tokens
    (r'Bearer\s+\S+', 'Bearer REDACTED'),
    # OpenShift OAuth tokens
    (r'sha256~[A-Za-z0-9_\-]+', 'sha256~REDACTED'),
    # AWS secret access keys
    (r'(aws_secret_access_key\s*=\s*)\S+', r'\1REDACTED'),
    # PEM private keys
    (
        r'-----BEGIN [A-Z ]*PRIVATE KEY-----.*?-----END [A-Z ]*PRIVATE KEY-----',
        '-----PRIVATE KEY REDACTED-----',
    ),
]


def redact_sensitive(text: str) -> str:
    """
    Redact sensitive data from text using pattern matching.

    Args:
        text: Text potentially containing sensitive data

    Returns:
        Text with sensitive data replaced with REDACTED markers

    Example:
        >>> redact_sensitive('{"auths": {"quay.io": {"auth": "dXNlcjpwYXNz"}}}')
        '{"auths": {"quay.io": {"auth": "REDACTED"}}}'
    """
    result = text
    for pattern, replacement in SENSITIVE_PATTERNS:
        result = re.sub(pattern, replacement, result, flags=re.IGNORECASE | re.DOTALL)
    return result
