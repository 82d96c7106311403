from shared.logging import REDACTED, get_log_level, redact_secrets


class TestRedactSecrets:
    def test_top_level_keys(self):
        event = redact_secrets(None, "info", {"event": "x", "hash_secret": "s3cret"})
        assert event["hash_secret"] == REDACTED

    def test_nested_payload(self):
        event = redact_secrets(None, "info", {"params": {"vnp_TxnRef": "1", "vnp_SecureHash": "abc"}})
        assert event["params"] == {"vnp_TxnRef": "1", "vnp_SecureHash": REDACTED}

    def test_other_values_untouched(self):
        event = redact_secrets(None, "info", {"order_id": 7})
        assert event == {"order_id": 7}


class TestLogLevel:
    def test_level_by_environment(self, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        assert get_log_level("test") == "WARNING"
        assert get_log_level("production") == "INFO"

    def test_explicit_level_wins(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        assert get_log_level("development") == "ERROR"
