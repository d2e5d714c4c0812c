# glue_core/repository.py
from __future__ import annotations
import json
import os
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List

import yaml
from jsonschema import Draft202012Validator

from glue_core.exceptions import ConfigError

SCHEMA_PATH = os.path.join(os.path.dirname(__file__), "schemas", "object_map.json")


@dataclass(frozen=True)
class AppConfig:
    package: str
    activity: str
    appium_host: str = "localhost"
    appium_port: int = 4723
    appium_path: str = "/"
    capabilities: Dict[str, Any] = field(default_factory=dict)
    password: str = ""
    seed: str = ""
    account: str = ""
    account_short: str = ""
    artifacts_dir: str = "artifacts"
    browser_package: str = "com.android.chrome"

    @property
    def intent(self) -> str:
        """Component name used by ``mobile: startActivity``."""
        activity = self.activity
        if activity.startswith("."):
            activity = self.package + activity
        return f"{self.package}/{activity}"


class Repository:
    """
    Loads an object map YAML. Provides access to app config and named XPath locators.
    """

    def __init__(self, path: str):
        self.path = os.path.abspath(path)
        self._raw: Dict[str, Any] = self._load_yaml(self.path)
        self._validate()
        self._app = self._parse_app_config(self._raw["app"])
        self._elements: Dict[str, Dict[str, Any]] = self._raw["elements"]

    @staticmethod
    def _load_yaml(path: str) -> Dict[str, Any]:
        if not os.path.exists(path):
            raise ConfigError(f"Object map YAML not found: {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
            if not isinstance(data, dict):
                raise ConfigError("Object map YAML must be a mapping at root.")
            return data
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML: {e}") from e

    @staticmethod
    def _load_schema() -> Dict[str, Any]:
        with open(SCHEMA_PATH, "r", encoding="utf-8") as f:
            return json.load(f)

    def _validate(self) -> None:
        validator = Draft202012Validator(self._load_schema())
        errors = sorted(validator.iter_errors(self._raw), key=lambda e: list(e.path))
        if errors:
            lines = [f"Object map schema validation failed: {self.path}"]
            for e in errors:
                lines.append(f"- {list(e.path)}: {e.message}")
            raise ConfigError("\n".join(lines))

    @staticmethod
    def _parse_app_config(d: Dict[str, Any]) -> AppConfig:
        appium = d.get("appium", {}) or {}
        wallet = d.get("wallet", {}) or {}
        return AppConfig(
            package=str(d["package"]),
            activity=str(d["activity"]),
            appium_host=str(appium.get("host", "localhost")),
            appium_port=int(appium.get("port", 4723)),
            appium_path=str(appium.get("path", "/")),
            capabilities=dict(appium.get("capabilities", {}) or {}),
            password=str(wallet.get("password", "")),
            seed=str(wallet.get("seed", "")),
            account=str(wallet.get("account", "")),
            account_short=str(wallet.get("account_short", "")),
            artifacts_dir=str(d.get("artifacts_dir", "artifacts")),
            browser_package=str(d.get("browser_package", "com.android.chrome")),
        )

    @property
    def app(self) -> AppConfig:
        return self._app

    def override_app(self, **changes: Any) -> AppConfig:
        """Replace app settings (e.g. Appium host/port from the command line)."""
        changes = {k: v for k, v in changes.items() if v is not None}
        if changes:
            self._app = replace(self._app, **changes)
        return self._app

    def xpath(self, name: str, /, **params: Any) -> str:
        """
        Render the XPath for element ``name``, filling ``{placeholders}``.
        """
        template = self.get_element_spec(name)["xpath"]
        try:
            return template.format(**params)
        except KeyError as e:
            raise ConfigError(f"elements.{name}: missing locator parameter {e}") from e

    def get_element_spec(self, name: str) -> Dict[str, Any]:
        if name not in self._elements:
            raise ConfigError(f"Unknown element: {name}")
        return self._elements[name]

    def require(self, names: List[str]) -> None:
        """Fail early when the map is missing elements a driver depends on."""
        missing = [n for n in names if n not in self._elements]
        if missing:
            raise ConfigError(f"{self.path}: missing elements: {missing}")

