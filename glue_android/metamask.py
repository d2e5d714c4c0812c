# glue_android/metamask.py
"""
@file metamask.py
@brief MetaMask Android screens: unlock, condition predicates, payloads and setup.

Every coroutine here takes the resource as its first argument and expects
to run inside a task holding the session's exclusive queue.
"""

from __future__ import annotations

import logging

from selenium.common.exceptions import WebDriverException

from glue_core.config import GlueConfig
from glue_core.detector import Condition, ConditionDetector, gather_checks
from glue_core.events import (REQUEST_ACCOUNTS, SEND_TRANSACTION, SIGN_MESSAGE,
                              RequestAccountsEvent, SendTransactionEvent,
                              SignMessageEvent)
from glue_core.exceptions import ActionError, GlueError
from glue_core.repository import AppConfig
from glue_core.units import parse_units
from glue_core.waits import retry, wait_until_passes

from .driver import AppiumResource

log = logging.getLogger(__name__)

# Failures that mean "the screen changed under us", not a broken session.
TRANSIENT = (GlueError, WebDriverException)

ETHER_DECIMALS = 18

# Every locator the adapter and the command handlers look up.
REQUIRED_ELEMENTS = (
    # unlock and detection
    "login_password_input", "unlock_button", "connect_account_modal",
    "tx_origin_pill", "tx_to_label", "personal_sign_modal",
    # payloads
    "request_accounts_edit", "request_accounts_account", "sheet_back_button",
    "tx_view_data", "tx_hex_data", "tx_data_close", "tx_to_address",
    "tx_to_account", "tx_from_account", "tx_value", "sign_message_text",
    # answers
    "connect_approve_button", "connect_reject_button", "sign_approve_button",
    "sign_reject_button", "tx_approve_button", "tx_reject_button",
    # launch
    "dapp_walletconnect_button", "dapp_select_wallet_button", "dapp_wallet_option",
    # wallet import
    "get_started_button", "import_wallet_button", "no_thanks_button",
    "terms_scroll_button", "terms_checkbox", "terms_accept_button",
    "seed_show_button", "seed_input", "new_password_input",
    "confirm_password_input", "biometrics_switch", "import_submit_button",
    "done_button",
    # networks
    "open_networks_button", "add_custom_network_button", "network_name_input",
    "chain_id_input", "rpc_dropdown", "add_rpc_button", "rpc_url_input",
    "confirm_rpc_button", "network_symbol_input", "explorer_dropdown",
    "add_explorer_button", "explorer_url_input", "confirm_explorer_button",
    "confirm_network_button", "network_menu_item", "network_education_close",
)


class MetaMask:
    """Screen knowledge for the MetaMask Android wallet."""

    def __init__(self, app: AppConfig, config: GlueConfig):
        self.app = app
        self.config = config

    # --- Unlock ---

    async def unlock_with_password(self, resource: AppiumResource) -> None:
        """
        Type the wallet password if the lock screen is showing.

        The app is brought back to the foreground before each attempt.
        """
        field = resource.element("login_password_input")

        async def enter_password() -> bool:
            if not await resource.probe_foreground():
                await resource.activate()
            if not await field.is_existing():
                return False
            await field.set_value(self.app.password)
            return True

        settings = self.config.unlock_retry
        entered = await retry(
            enter_password,
            max_attempts=settings.retry_count or 2,
            interval=settings.interval,
            exceptions=TRANSIENT,
            description="unlock with password",
            stage="unlock",
        )
        if entered:
            log.debug("password entered, unlocking")
            await resource.element("unlock_button").click_until_gone()

    # --- Conditions ---

    async def is_connect_account_modal(self, resource: AppiumResource) -> bool:
        return await resource.element("connect_account_modal").is_existing()

    async def is_send_transaction_modal(self, resource: AppiumResource) -> bool:
        pill, to_label = await gather_checks(
            resource.element("tx_origin_pill").is_existing(),
            resource.element("tx_to_label").is_existing(),
        )
        return pill and to_label

    async def is_personal_sign_modal(self, resource: AppiumResource) -> bool:
        return await resource.element("personal_sign_modal").is_existing()

    def detector(self) -> ConditionDetector:
        return ConditionDetector(
            [
                Condition(REQUEST_ACCOUNTS, self.is_connect_account_modal, self.request_accounts_payload),
                Condition(SEND_TRANSACTION, self.is_send_transaction_modal, self.send_transaction_payload),
                Condition(SIGN_MESSAGE, self.is_personal_sign_modal, self.sign_message_payload),
            ],
            prepare=self.unlock_with_password,
        )

    # --- Payloads ---

    async def request_accounts_payload(self, resource: AppiumResource) -> RequestAccountsEvent:
        log.debug("reading requestaccounts")
        await resource.element("request_accounts_edit").click()

        # The dialog only shows an abbreviated address, so check for the one
        # the seed phrase derives and report the full form.
        account = resource.element("request_accounts_account", account_short=self.app.account_short)
        if not await account.is_existing():
            raise ActionError("request_accounts", account.name, details="couldn't find account in request accounts")

        await resource.element("sheet_back_button").click()
        return RequestAccountsEvent(accounts=[self.app.account])

    async def send_transaction_payload(self, resource: AppiumResource) -> SendTransactionEvent:
        log.debug("reading sendtransaction")

        try:
            await resource.element("tx_view_data").click()
            data = await resource.element("tx_hex_data").get_attribute("text")
            await resource.element("tx_data_close").click()
        except TRANSIENT as e:
            log.debug("no transaction data view (%s), assuming empty data", type(e).__name__)
            data = "0x"

        sender, recipient, value = await gather_checks(
            self._transaction_from(resource),
            self._transaction_to(resource),
            self._transaction_value(resource),
        )
        return SendTransactionEvent(from_=sender, to=recipient, data=data, value=value)

    async def _transaction_to(self, resource: AppiumResource) -> str:
        try:
            text = await resource.element("tx_to_address").get_attribute("content-desc")
            return text.split(",")[0]
        except TRANSIENT:
            exists = await resource.element("tx_to_account").is_existing()
            return self.app.account if exists else "0x"

    async def _transaction_from(self, resource: AppiumResource) -> str:
        # TODO: "Account 1" also matches the recipient when sending to self.
        exists = await resource.element("tx_from_account").is_existing()
        return self.app.account if exists else "0x"

    async def _transaction_value(self, resource: AppiumResource) -> str:
        text = await resource.element("tx_value").get_attribute("text")
        amount = text.split(" ")[0]
        return str(parse_units(amount.strip(), ETHER_DECIMALS))

    async def sign_message_payload(self, resource: AppiumResource) -> SignMessageEvent:
        log.debug("reading signmessage")
        text = await resource.element("sign_message_text").get_attribute("text")
        return SignMessageEvent(message=text.strip())

    # --- Wallet import ---

    async def setup(self, resource: AppiumResource) -> None:
        """Import the test wallet from its seed phrase on a fresh install."""
        log.info("Importing wallet")

        try:
            get_started = resource.element("get_started_button")
            await get_started.wait_for_exist()
            await get_started.click()
        except TRANSIENT:
            log.debug("no intro screen")

        import_wallet = resource.element("import_wallet_button")
        await import_wallet.wait_for_exist()
        await import_wallet.click()

        # Deny metrics.
        await resource.element("no_thanks_button").click()

        try:
            await resource.element("terms_scroll_button").click()
            await resource.element("terms_checkbox").click()
            accept = resource.element("terms_accept_button")
            await accept.wait_for_enabled()
            await accept.click()
        except TRANSIENT:
            # Terms are only shown when MetaMask was fully reset.
            log.debug("no terms of use screen")

        await resource.element("seed_show_button").click()
        await resource.element("seed_input").set_value(self.app.seed)
        await resource.element("new_password_input").set_value(self.app.password)
        await resource.element("confirm_password_input").set_value(self.app.password)
        await resource.element("biometrics_switch").click()
        await resource.element("import_submit_button").click()
        await resource.element("done_button").click()

        await resource.element("no_thanks_button").click_until_gone()
        log.info("Wallet imported")

    # --- Networks ---

    async def open_networks_menu(self, resource: AppiumResource) -> None:
        await resource.element("open_networks_button").click()

    async def add_network(self, resource: AppiumResource, chain_id: str, rpc_url: str) -> None:
        """Add ``Test Chain <id>`` as a custom network and switch to it."""
        chain_name = f"Test Chain {chain_id}"
        log.info("Adding network %s (%s)", chain_name, rpc_url)

        await self.unlock_with_password(resource)
        await self.open_networks_menu(resource)
        await resource.element("add_custom_network_button").click()
        await resource.element("network_name_input").add_value(chain_name)

        # MetaMask sometimes fills the chain id itself; overwrite until it sticks.
        chain_field = resource.element("chain_id_input")
        settings = self.config.set_text_action
        await wait_until_passes(
            chain_field.set_value,
            settings.timeout,
            settings.interval,
            TRANSIENT,
            "enter chain id",
            chain_id,
            stage="execute",
        )

        await resource.element("rpc_dropdown").click()
        await resource.element("add_rpc_button").click()
        await resource.element("rpc_url_input").add_value(rpc_url)
        await resource.element("confirm_rpc_button").click()
        await resource.element("network_symbol_input").add_value("TETH")
        await resource.element("explorer_dropdown").click()
        await resource.element("add_explorer_button").click()
        await resource.element("explorer_url_input").add_value("https://example.com/")
        await resource.element("confirm_explorer_button").click()
        await resource.element("confirm_network_button").click_until_gone()

        await self.unlock_with_password(resource)
        await self.open_networks_menu(resource)
        await resource.element("network_menu_item", chain_name=chain_name).click()
        await resource.element("network_education_close").click()
