from decimal import Decimal

from protean import Domain

from shared.config import GatewaySettings, Settings, _as_bool

CONFIG = {
    "custom": {
        "database_url": "sqlite:///base.db",
        "default_shipping_fee": "7.50",
        "database_echo": "yes",
        "vnpay": {"tmn_code": "BASE", "hash_secret": "base-secret", "amount_scale": "100"},
    },
    "staging": {
        "custom": {
            "database_url": "sqlite:///staging.db",
            "vnpay": {"hash_secret": "staging-secret"},
        },
    },
}


def _settings(config):
    return Settings.from_domain(Domain(name="config-test", config=config))


class TestSettingsFromDomain:
    def test_defaults_without_custom_section(self, monkeypatch):
        monkeypatch.delenv("PROTEAN_ENV", raising=False)
        settings = _settings({})

        assert settings.env == "development"
        assert settings.default_shipping_fee == Decimal("5.00")
        assert settings.gateway.amount_scale == 100
        assert settings.gateway.amount_tolerance == Decimal("0.01")

    def test_custom_values_apply(self, monkeypatch):
        monkeypatch.delenv("PROTEAN_ENV", raising=False)
        settings = _settings(CONFIG)

        assert settings.database_url == "sqlite:///base.db"
        assert settings.database_echo is True
        assert settings.default_shipping_fee == Decimal("7.50")
        assert settings.gateway.tmn_code == "BASE"
        assert settings.gateway.amount_scale == 100

    def test_environment_overlay_wins_over_top_level(self, monkeypatch):
        monkeypatch.setenv("PROTEAN_ENV", "staging")
        settings = _settings(dict(CONFIG, env="staging"))

        assert settings.env == "staging"
        assert settings.database_url == "sqlite:///staging.db"
        assert settings.gateway.hash_secret == "staging-secret"
        assert settings.gateway.tmn_code == "BASE"

    def test_test_overlay_of_domain_file(self):
        from ordering.domain import ordering

        settings = Settings.from_domain(ordering)

        assert settings.env == "test"
        assert settings.frontend_url == "http://shop.test"
        assert settings.gateway.tmn_code == "TESTTMN1"
        assert settings.gateway.url == "https://gateway.test/pay"
        assert settings.gateway.amount_tolerance == Decimal("0.01")

    def test_both_domains_share_one_file(self):
        from ordering.domain import ordering
        from payments.domain import payments

        assert Settings.from_domain(ordering) == Settings.from_domain(payments)


class TestGatewaySettings:
    def test_unknown_keys_are_ignored(self):
        gateway = GatewaySettings.from_mapping({"tmn_code": "X", "colour": "blue"})
        assert gateway.tmn_code == "X"

    def test_tolerance_is_money(self):
        assert GatewaySettings.from_mapping({"amount_tolerance": "0.5"}).amount_tolerance == Decimal("0.50")

    def test_missing_mapping(self):
        assert GatewaySettings.from_mapping(None) == GatewaySettings()


class TestAsBool:
    def test_truthy_strings(self):
        assert all(_as_bool(value) for value in ("1", "true", "Yes", " on "))

    def test_falsy_strings(self):
        assert not any(_as_bool(value) for value in ("0", "false", "", "off"))

    def test_booleans_pass_through(self):
        assert _as_bool(True) is True
        assert _as_bool(False) is False
