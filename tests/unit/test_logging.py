"""
Unit Tests - Logging Processors
"""
from storefront.config.logging import REDACTED, redact_secrets, service_fields


class TestRedactSecrets:
    """Tests for credential masking"""

    def test_masks_credentials(self):
        event = redact_secrets(None, "info", {"event": "Login", "token": "eyJ.abc.def", "password": "pw"})

        assert event["token"] == REDACTED
        assert event["password"] == REDACTED
        assert event["event"] == "Login"

    def test_leaves_other_keys(self):
        event = redact_secrets(None, "info", {"event": "Session created", "username": "alice", "token": None})

        assert event["username"] == "alice"
        assert event["token"] is None


class TestServiceFields:
    """Tests for the service identity processor"""

    def test_stamps_event(self):
        add = service_fields("shopjoy-storefront", "testing")

        event = add(None, "info", {"event": "x"})

        assert event["service"] == "shopjoy-storefront"
        assert event["environment"] == "testing"
