"""
Tests for secure logging utilities with PII redaction.
"""

import json
import logging

import pytest
from utils.secure_logging import (
    hash_user_id,
    log_action,
    redact_pii,
    safe_log_dict
)


class TestRedactPII:
    """Tests for PII redaction function"""

    def test_redact_email_addresses(self):
        """Email addresses should be redacted"""
        result = redact_pii("User john.doe@example.com logged in")
        assert result == "User [EMAIL_REDACTED] logged in"

    def test_redact_ipv4_addresses(self):
        """IPv4 addresses should be redacted"""
        assert redact_pii("Request from 192.168.1.100") == "Request from [IP_REDACTED]"

    def test_redact_phone_numbers(self):
        """US phone numbers should be redacted"""
        result = redact_pii("Contact: (555) 123-4567 or 555-987-6543")
        assert result.count("[PHONE_REDACTED]") == 2

    def test_plain_text_untouched(self):
        """Disaster text without PII is unchanged"""
        assert redact_pii("Springfield Downtown Flood") == "Springfield Downtown Flood"

    def test_empty(self):
        assert redact_pii("") == ""
        assert redact_pii(None) is None


class TestHashUserId:

    def test_hash_is_stable_and_short(self):
        assert hash_user_id('citizen1') == hash_user_id('citizen1')
        assert len(hash_user_id('citizen1')) == 16
        assert hash_user_id('citizen1') != 'citizen1'

    def test_missing_user(self):
        assert hash_user_id(None) == '[NO_USER_ID]'


class TestSafeLogDict:

    def test_user_ids_hashed(self):
        result = safe_log_dict({'user_id': 'citizen1', 'owner_id': 'citizen2'})
        assert result['user_id'] == hash_user_id('citizen1')
        assert result['owner_id'] == hash_user_id('citizen2')

    def test_secrets_redacted(self):
        result = safe_log_dict({'api_key': 'abc', 'GEMINI_API_KEY': 'xyz', 'count': 5})
        assert result == {'api_key': '[REDACTED]', 'GEMINI_API_KEY': '[REDACTED]', 'count': 5}

    def test_nested_and_strings_scrubbed(self):
        result = safe_log_dict({'meta': {'note': 'mail a@b.com'}, 'sources': {'ReliefWeb': 3}})
        assert result['meta']['note'] == 'mail [EMAIL_REDACTED]'
        assert result['sources'] == {'ReliefWeb': 3}


class TestLogAction:

    def test_emits_one_structured_line(self, caplog):
        with caplog.at_level(logging.INFO, logger='disaster_api.actions'):
            log_action("Disaster created", {'disaster_id': '42', 'user_id': 'citizen1'})

        assert len(caplog.records) == 1
        message = caplog.records[0].getMessage()
        assert message.startswith("action=Disaster created details=")
        details = json.loads(message.split('details=', 1)[1])
        assert details == {'disaster_id': '42', 'user_id': hash_user_id('citizen1')}

    def test_no_details(self, caplog):
        with caplog.at_level(logging.INFO, logger='disaster_api.actions'):
            log_action("Health checked")
        assert caplog.records[0].getMessage() == "action=Health checked details={}"
