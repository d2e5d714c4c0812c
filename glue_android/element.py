# glue_android/element.py
"""
@file element.py
@brief Async element wrapper with wait and action capabilities.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from appium.webdriver.common.appiumby import AppiumBy
from selenium.common.exceptions import WebDriverException

from glue_core.config import GlueConfig
from glue_core.exceptions import ActionError, ElementNotFoundError, TimeoutError
from glue_core.waits import wait_until, wait_until_passes

if TYPE_CHECKING:
    from .driver import AppiumResource

log = logging.getLogger(__name__)


class AsyncElement:
    """
    Lazy handle to an element located by XPath.

    Nothing is looked up until an operation runs, so an element can be
    created before the screen that holds it appears. Actions wait for the
    element and retry transient driver failures within the configured
    bounds; existence checks never wait.
    """

    def __init__(self, resource: AppiumResource, name: str, xpath: str, config: GlueConfig):
        self._resource = resource
        self._config = config
        self.name = name
        self.xpath = xpath

    def __repr__(self) -> str:
        return f"AsyncElement({self.name!r})"

    # --- State Queries ---

    async def is_existing(self) -> bool:
        found = await self._resource.call(
            self._resource.driver.find_elements, AppiumBy.XPATH, self.xpath
        )
        return len(found) > 0

    async def is_enabled(self) -> bool:
        raw = await self._find()
        return bool(await self._resource.call(raw.is_enabled))

    async def _find(self) -> Any:
        return await self._resource.call(
            self._resource.driver.find_element, AppiumBy.XPATH, self.xpath
        )

    # --- Waits ---

    async def wait_for_exist(self, timeout: Optional[float] = None) -> None:
        settings = self._config.element_wait
        timeout = settings.timeout if timeout is None else timeout
        try:
            await wait_until(
                self.is_existing,
                timeout=timeout,
                interval=settings.interval,
                description=f"element '{self.name}' to exist",
                stage="wait",
            )
        except TimeoutError as e:
            last = e.original_exception
            raise ElementNotFoundError(
                self.name,
                self.xpath,
                timeout,
                last_error=f"{type(last).__name__}: {last}" if last else None,
            ) from e

    async def wait_for_enabled(self, timeout: Optional[float] = None) -> None:
        settings = self._config.enabled_wait
        timeout = settings.timeout if timeout is None else timeout
        await wait_until(
            self.is_enabled,
            timeout=timeout,
            interval=settings.interval,
            description=f"element '{self.name}' to be enabled",
            stage="wait",
        )

    # --- Actions ---

    async def _act(self, action: str, settings_name: str, func: Any, *args: Any) -> Any:
        settings = getattr(self._config, settings_name)

        async def attempt() -> Any:
            raw = await self._find()
            return await self._resource.call(getattr(raw, func), *args)

        try:
            return await wait_until_passes(
                attempt,
                timeout=settings.timeout,
                interval=settings.interval,
                exceptions=(WebDriverException,),
                description=f"{action} on '{self.name}'",
                stage="execute",
            )
        except TimeoutError as e:
            raise ActionError(action, self.name, details=self.xpath, cause=e.original_exception) from e

    async def click(self) -> None:
        log.debug("click %s", self.name)
        await self._act("click", "click_action", "click")

    async def click_once(self) -> None:
        """Single click attempt with no waiting or retry."""
        raw = await self._find()
        await self._resource.call(raw.click)

    async def clear_value(self) -> None:
        await self._act("clear", "set_text_action", "clear")

    async def add_value(self, text: str) -> None:
        await self._act("set_text", "set_text_action", "send_keys", text)

    async def set_value(self, text: str) -> None:
        await self.clear_value()
        await self.add_value(text)

    async def get_attribute(self, name: str) -> str:
        value = await self._act("get_attribute", "get_text_action", "get_attribute", name)
        return "" if value is None else str(value)

    async def click_until_gone(self) -> None:
        """
        Keep clicking while the element exists.

        The element can disappear between the existence check and the
        click; that failure just ends the attempt.
        """
        settings = self._config.dismiss_loop

        async def gone() -> bool:
            if not await self.is_existing():
                return True
            try:
                await self.click_once()
            except WebDriverException as e:
                log.debug("click on '%s' raced its disappearance: %s", self.name, type(e).__name__)
            return False

        await wait_until(
            gone,
            timeout=settings.timeout,
            interval=settings.interval,
            description=f"element '{self.name}' to go away",
            stage="dismiss",
        )
