# glue_android/driver.py
"""
@file driver.py
@brief Appium UiAutomator2 session exposed as an async automation resource.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, Callable, Dict, Optional

from appium import webdriver
from appium.options.android import UiAutomator2Options
from selenium.common.exceptions import WebDriverException

from glue_core.artifacts import make_artifacts
from glue_core.config import GlueConfig
from glue_core.exceptions import ResourceError
from glue_core.interfaces import IResource
from glue_core.repository import Repository

from .element import AsyncElement

log = logging.getLogger(__name__)

# ``mobile: queryAppState`` value for an app running in the foreground.
APP_STATE_FOREGROUND = 4


def build_capabilities(repo: Repository) -> Dict[str, Any]:
    app = repo.app
    caps = {
        "platformName": "Android",
        "appium:automationName": "UiAutomator2",
        "appium:newCommandTimeout": 120,
    }
    caps.update(app.capabilities)
    caps["appium:appPackage"] = app.package
    caps["appium:appActivity"] = app.activity
    return caps


def server_url(repo: Repository) -> str:
    app = repo.app
    path = app.appium_path if app.appium_path.startswith("/") else "/" + app.appium_path
    return f"http://{app.appium_host}:{app.appium_port}{path}"


class AppiumResource(IResource):
    """
    Owns the Appium webdriver for one session.

    The Appium client is blocking, so every call is shipped to a small
    thread pool. Callers still go through the exclusive queue; the pool
    only keeps the event loop responsive while a call is in flight.
    """

    def __init__(
        self,
        driver: Any,
        repo: Repository,
        config: GlueConfig,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self.driver = driver
        self.repo = repo
        self.config = config
        self._executor = executor or ThreadPoolExecutor(max_workers=4, thread_name_prefix="appium")

    @classmethod
    async def create(cls, repo: Repository, config: GlueConfig) -> AppiumResource:
        url = server_url(repo)
        options = UiAutomator2Options().load_capabilities(build_capabilities(repo))
        executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="appium")
        loop = asyncio.get_running_loop()

        log.info("Connecting to Appium at %s", url)
        try:
            driver = await loop.run_in_executor(
                executor, partial(webdriver.Remote, command_executor=url, options=options)
            )
        except WebDriverException as e:
            executor.shutdown(wait=False)
            raise ResourceError("create_session", e) from e

        # Waits are explicit (see AsyncElement); existence checks must not block.
        await loop.run_in_executor(executor, driver.implicitly_wait, 0)
        log.info("Appium session %s started", getattr(driver, "session_id", "?"))
        return cls(driver, repo, config, executor)

    async def call(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run a blocking driver call on the worker pool."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, partial(func, *args, **kwargs))

    def element(self, name: str, /, **params: Any) -> AsyncElement:
        return AsyncElement(self, name, self.repo.xpath(name, **params), self.config)

    # --- IResource ---

    async def query_app_state(self, app_id: Optional[str] = None) -> int:
        state = await self.call(
            self.driver.execute_script,
            "mobile: queryAppState",
            {"appId": app_id or self.repo.app.package},
        )
        return int(state)

    async def probe_foreground(self) -> bool:
        return await self.query_app_state() == APP_STATE_FOREGROUND

    async def activate(self) -> None:
        log.debug("starting activity %s", self.repo.app.intent)
        await self.call(
            self.driver.execute_script,
            "mobile: startActivity",
            {"intent": self.repo.app.intent},
        )

    async def deep_link(self, url: str, package: Optional[str] = None) -> None:
        await self.call(
            self.driver.execute_script,
            "mobile: deepLink",
            {"url": url, "package": package or self.repo.app.browser_package},
        )

    async def close(self) -> None:
        log.info("Deleting Appium session")
        try:
            await self.call(self.driver.quit)
        finally:
            self._executor.shutdown(wait=False)

    # --- Diagnostics ---

    def capture_artifacts(self, prefix: str = "fatal") -> Dict[str, str]:
        """
        Screenshot and UI hierarchy of the current screen.

        Blocking; call it through ``save_artifacts`` from the event loop.
        """
        return make_artifacts(
            self.driver,
            self.repo.app.artifacts_dir,
            prefix,
            capture_func=lambda d, path: d.get_screenshot_as_file(path),
            dump_func=lambda d: d.page_source,
        )

    async def save_artifacts(self, prefix: str = "fatal") -> Dict[str, str]:
        return await self.call(self.capture_artifacts, prefix)
