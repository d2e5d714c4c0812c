# glue_android/glue.py
"""
@file glue.py
@brief Test-protocol command handlers for MetaMask on Android.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Set

from glue_core.config import GlueConfig
from glue_core.events import (APPROVE, REJECT, ActivateChain, EventEmitter,
                              Report, RequestAccounts, SendTransaction,
                              SignMessage, SignTransaction,
                              SwitchEthereumChain)
from glue_core.exceptions import FatalError, GlueError, UnsupportedCommandError
from glue_core.repository import Repository
from glue_core.session import GlueSession, Supervisor

from .driver import AppiumResource
from .metamask import REQUIRED_ELEMENTS, MetaMask

log = logging.getLogger(__name__)

ResourceFactory = Callable[[Repository, GlueConfig], Awaitable[Any]]


class MetaMaskAndroidGlue:
    """
    Glue between the test protocol and a MetaMask Android session.

    Events detected by the session are published on ``events``. Commands
    that answer an event (approve/reject) carry that event's id and are
    correlated against it by the session.
    """

    def __init__(
        self,
        repo: Repository,
        config: Optional[GlueConfig] = None,
        *,
        supervisor: Optional[Supervisor] = None,
        resource_factory: ResourceFactory = AppiumResource.create,
        capture_artifacts: bool = True,
    ):
        self.repo = repo
        repo.require(list(REQUIRED_ELEMENTS))
        self.config = config or GlueConfig()
        self.events = EventEmitter()
        self.metamask = MetaMask(repo.app, self.config)
        self._supervisor = supervisor
        self._resource_factory = resource_factory
        self._capture_artifacts = capture_artifacts
        self._session: Optional[GlueSession] = None
        self._resource: Any = None
        self._report: Optional[asyncio.Future] = None
        self._fatal_tasks: Set[asyncio.Task] = set()

    @property
    def session(self) -> GlueSession:
        if self._session is None:
            raise GlueError("glue not started")
        return self._session

    @property
    def started(self) -> bool:
        return self._session is not None

    @property
    def report_ready(self) -> asyncio.Future:
        if self._report is None:
            self._report = asyncio.get_running_loop().create_future()
        return self._report

    async def start(self, setup: bool = True) -> GlueSession:
        """Open the Appium session, import the wallet and start watching."""
        self._resource = await self._resource_factory(self.repo, self.config)
        session = GlueSession(
            self._resource,
            self.metamask.detector(),
            config=self.config,
            sink=self.events,
            supervisor=self._on_fatal,
        )
        self._session = session
        if setup:
            await session.submit(self.metamask.setup)
        return session.start()

    def _on_fatal(self, error: FatalError) -> None:
        if not (self._capture_artifacts and hasattr(self._resource, "save_artifacts")):
            self._notify(error)
            return
        # Screenshots go over HTTP; capture on the worker pool, then report.
        task = asyncio.get_running_loop().create_task(self._capture_then_notify(error))
        self._fatal_tasks.add(task)
        task.add_done_callback(self._fatal_tasks.discard)

    async def _capture_then_notify(self, error: FatalError) -> None:
        try:
            artifacts = await self._resource.save_artifacts()
        except Exception as e:
            log.warning("artifact capture failed: %s: %s", type(e).__name__, e)
        else:
            if artifacts:
                log.error("failure artifacts: %s", artifacts)
        self._notify(error)

    def _notify(self, error: FatalError) -> None:
        if self._supervisor is not None:
            self._supervisor(error)

    # --- Commands ---

    async def launch(self, url: str) -> None:
        """Open the dapp in the browser and connect it to MetaMask."""
        log.info("Launching %s", url)

        async def task(resource: AppiumResource) -> None:
            await resource.deep_link(url)
            await resource.element("dapp_walletconnect_button").click()
            await resource.element("dapp_select_wallet_button").click()
            # TODO: assumes the wallet chooser lists several wallets; a phone with
            #       only MetaMask installed skips straight to the app.
            await resource.element("dapp_wallet_option").click()

        await self.session.submit(task)

    async def activate_chain(self, action: ActivateChain) -> None:
        async def task(resource: AppiumResource) -> None:
            await self.metamask.add_network(resource, action.chain_id, action.rpc_url)

        await self.session.submit(task)

    async def request_accounts(self, action: RequestAccounts) -> None:
        buttons = {APPROVE: "connect_approve_button", REJECT: "connect_reject_button"}
        await self._answer("requestAccounts", action.id, action.action, buttons)

    async def sign_message(self, action: SignMessage) -> None:
        buttons = {APPROVE: "sign_approve_button", REJECT: "sign_reject_button"}
        await self._answer("signMessage", action.id, action.action, buttons)

    async def send_transaction(self, action: SendTransaction) -> None:
        buttons = {APPROVE: "tx_approve_button", REJECT: "tx_reject_button"}
        await self._answer("sendTransaction", action.id, action.action, buttons)

    async def _answer(self, command: str, event_id: str, choice: str, buttons: dict) -> None:
        async def task(resource: AppiumResource) -> None:
            element_name = buttons.get(choice)
            if element_name is None:
                raise UnsupportedCommandError(command, choice)
            await resource.element(element_name).click()

        log.info("%s %s -> %s", command, event_id, choice)
        await self.session.submit(task, event_id)

    async def sign_transaction(self, action: SignTransaction) -> None:
        raise UnsupportedCommandError("signTransaction")

    async def switch_ethereum_chain(self, action: SwitchEthereumChain) -> None:
        raise UnsupportedCommandError("switchEthereumChain")

    async def report(self, action: Report) -> None:
        """Finish the run: tear the session down and hand over the report."""
        await self.session.stop()
        if not self.report_ready.done():
            self.report_ready.set_result(action)
