"""
Action logging with PII redaction.

Every state-changing or upstream-facing operation writes one structured
line through log_action(). User identifiers are hashed and free text is
scrubbed of emails, phone numbers and IP addresses before it is logged.

Usage:
    from utils.secure_logging import log_action

    log_action("Disaster created", {'disaster_id': '42', 'user_id': 'citizen1'})
    # INFO action=Disaster created details={"disaster_id": "42", "user_id": "5f1c..."}
"""

import hashlib
import json
import logging
import re
from typing import Optional

logger = logging.getLogger('disaster_api.actions')

# Keys whose values are one-way hashed rather than dropped, so log lines
# for the same user can still be correlated
HASHED_KEYS = ('user_id', 'owner_id')

# Keys whose values never reach the logs
REDACTED_KEYS = ('password', 'token', 'api_key', 'secret', 'authorization', 'email', 'phone')


def redact_pii(text: str) -> str:
    """
    Redact personally identifiable information from free text.

    Redacts:
    - Email addresses → [EMAIL_REDACTED]
    - IP addresses → [IP_REDACTED]
    - Phone numbers → [PHONE_REDACTED]

    Examples:
        >>> redact_pii("Contact jane@example.com")
        'Contact [EMAIL_REDACTED]'
    """
    if not text:
        return text

    text = re.sub(
        r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b',
        '[EMAIL_REDACTED]',
        text
    )
    text = re.sub(
        r'\b(?:\d{1,3}\.){3}\d{1,3}\b',
        '[IP_REDACTED]',
        text
    )
    text = re.sub(
        r'\b\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b',
        '[PHONE_REDACTED]',
        text
    )
    return text


def hash_user_id(user_id: Optional[str], length: int = 16) -> str:
    """
    One-way hash of a user ID for logging.

    Examples:
        >>> hash_user_id('')
        '[NO_USER_ID]'
    """
    if not user_id:
        return '[NO_USER_ID]'

    return hashlib.sha256(str(user_id).encode()).hexdigest()[:length]


def safe_log_dict(data: dict) -> dict:
    """
    Copy of a details dict that is safe to log.

    Hashes user identifiers, drops secrets and redacts PII inside strings.

    Examples:
        >>> safe_log_dict({'api_key': 'abc', 'count': 5})
        {'api_key': '[REDACTED]', 'count': 5}
    """
    safe_data = {}
    for key, value in data.items():
        lowered = key.lower()
        if lowered in HASHED_KEYS:
            safe_data[key] = hash_user_id(value)
        elif any(sensitive in lowered for sensitive in REDACTED_KEYS):
            safe_data[key] = '[REDACTED]'
        elif isinstance(value, dict):
            safe_data[key] = safe_log_dict(value)
        elif isinstance(value, str):
            safe_data[key] = redact_pii(value)
        else:
            safe_data[key] = value

    return safe_data


def log_action(action: str, details: Optional[dict] = None) -> None:
    """
    Write one audit line for an API action.

    Args:
        action: Short human-readable action name
        details: Context for the action; sanitized before logging
    """
    payload = safe_log_dict(details or {})
    logger.info(f"action={action} details={json.dumps(payload, default=str, sort_keys=True)}")
