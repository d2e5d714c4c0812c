# tests/test_repository.py
"""
Tests for the object map repository.
"""

import pytest

from glue_android import default_object_map_path
from glue_android.metamask import MetaMask
from glue_core.config import GlueConfig
from glue_core.exceptions import ConfigError
from glue_core.repository import Repository

MINIMAL = """
app:
  package: io.metamask
  activity: .MainActivity
elements:
  greeting:
    xpath: '//android.widget.TextView[@text="{name}"]'
"""


@pytest.fixture
def bundled():
    return Repository(default_object_map_path())


class TestBundledMap:
    """The MetaMask map shipped with the package."""

    def test_app_config(self, bundled):
        app = bundled.app
        assert app.package == "io.metamask"
        assert app.intent == "io.metamask/io.metamask.MainActivity"
        assert app.account.startswith("0x") and len(app.account) == 42
        assert app.appium_port == 4723

    def test_placeholders(self, bundled):
        xpath = bundled.xpath("network_menu_item", chain_name="Test Chain 1337")
        assert '@text="Test Chain 1337"' in xpath

    def test_missing_placeholder(self, bundled):
        with pytest.raises(ConfigError, match="missing locator parameter"):
            bundled.xpath("request_accounts_account")

    def test_unknown_element(self, bundled):
        with pytest.raises(ConfigError):
            bundled.xpath("nope")

    def test_has_every_element_the_adapter_uses(self, bundled):
        names = [
            "login_password_input", "unlock_button", "connect_account_modal",
            "tx_origin_pill", "tx_to_label", "personal_sign_modal",
            "sign_approve_button", "sign_reject_button", "connect_approve_button",
            "connect_reject_button", "tx_approve_button", "tx_reject_button",
            "dapp_walletconnect_button", "dapp_select_wallet_button", "dapp_wallet_option",
        ]
        bundled.require(names)

    def test_override_app(self, bundled):
        app = bundled.override_app(appium_host="10.0.0.2", appium_port=None)
        assert app.appium_host == "10.0.0.2"
        assert app.appium_port == 4723
        assert MetaMask(bundled.app, GlueConfig()).app.appium_host == "10.0.0.2"


class TestValidation:
    """Schema validation of hand-written maps."""

    def test_minimal_map(self, tmp_path):
        path = tmp_path / "map.yaml"
        path.write_text(MINIMAL, encoding="utf-8")
        repo = Repository(str(path))
        repo.require(["greeting"])
        assert repo.app.browser_package == "com.android.chrome"
        assert repo.xpath("greeting", name="hi") == '//android.widget.TextView[@text="hi"]'

    def test_missing_app(self, tmp_path):
        path = tmp_path / "map.yaml"
        path.write_text("elements: {}\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="schema validation failed"):
            Repository(str(path))

    def test_bad_account(self, tmp_path):
        path = tmp_path / "map.yaml"
        text = MINIMAL.replace("  activity: .MainActivity\n", "  activity: .MainActivity\n  wallet:\n    account: '0x12'\n")
        path.write_text(text, encoding="utf-8")
        with pytest.raises(ConfigError):
            Repository(str(path))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "map.yaml"
        path.write_text("app: [\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            Repository(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            Repository(str(tmp_path / "none.yaml"))
