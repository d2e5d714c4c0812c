# glue_android/server.py
"""
@file server.py
@brief WebSocket transport exposing glue events and commands as JSON.

Outbound, every published event is broadcast to all connected clients::

    {"type": "event", "kind": "signmessage", "id": "<uuid>", "message": "..."}

Inbound, each command is answered with a result for its ``ref``::

    {"type": "signmessage", "id": "<uuid>", "action": "approve", "ref": 7}
    {"type": "result", "ref": 7, "ok": true}
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from typing import Any, Dict, Optional, Set

from jsonschema import Draft202012Validator
from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.exceptions import ConnectionClosed

from glue_core.events import (ActivateChain, GlueEvent, Report,
                              RequestAccounts, SendTransaction, SignMessage,
                              SignTransaction, SwitchEthereumChain)
from glue_core.exceptions import describe

log = logging.getLogger(__name__)

SCHEMA_PATH = os.path.join(os.path.dirname(__file__), "schemas", "commands.json")


def _load_schema() -> Dict[str, Any]:
    with open(SCHEMA_PATH, "r", encoding="utf-8") as f:
        return json.load(f)


class CommandError(ValueError):
    """Raised for malformed or schema-invalid inbound messages."""


class GlueServer:
    def __init__(self, glue: Any, host: str = "127.0.0.1", port: int = 3001):
        self.glue = glue
        self.host = host
        self.port = port
        self._validator = Draft202012Validator(_load_schema())
        self._clients: Set[ServerConnection] = set()
        self._tasks: Set[asyncio.Task] = set()
        self._server: Optional[Server] = None
        self._unsubscribe = glue.events.on("*", self._broadcast)

    async def start(self) -> GlueServer:
        self._server = await serve(self._handler, self.host, self.port)
        log.info("Glue listening on %s", self.url)
        return self

    async def close(self) -> None:
        self._unsubscribe()
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

    @property
    def url(self) -> str:
        host, port = self.host, self.port
        sockets = list(self._server.sockets) if self._server is not None else []
        if sockets:
            sockname = sockets[0].getsockname()
            port = sockname[1]
            host = "[::1]" if ":" in sockname[0] else "127.0.0.1"
        return f"ws://{host}:{port}/"

    # --- Connections ---

    async def _handler(self, connection: ServerConnection) -> None:
        self._clients.add(connection)
        log.info("client connected (%d total)", len(self._clients))
        try:
            async for message in connection:
                task = asyncio.ensure_future(self._respond(connection, message))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
        except ConnectionClosed:
            pass
        finally:
            self._clients.discard(connection)
            log.info("client disconnected (%d left)", len(self._clients))

    async def _respond(self, connection: ServerConnection, message: Any) -> None:
        reply = await self.dispatch(message)
        try:
            await connection.send(json.dumps(reply))
        except ConnectionClosed:
            log.warning("client went away before result for ref=%s", reply.get("ref"))

    async def _broadcast(self, event: GlueEvent) -> None:
        data = json.dumps(event.to_dict())
        for connection in list(self._clients):
            try:
                await connection.send(data)
            except ConnectionClosed:
                self._clients.discard(connection)

    # --- Commands ---

    def parse(self, raw: Any) -> Dict[str, Any]:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            message = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CommandError(f"invalid JSON: {e}") from e
        errors = sorted(self._validator.iter_errors(message), key=lambda e: list(e.path))
        if errors:
            lines = ["Command schema validation failed:"]
            for e in errors:
                lines.append(f"- {list(e.path)}: {e.message}")
            raise CommandError("\n".join(lines))
        return message

    async def dispatch(self, raw: Any) -> Dict[str, Any]:
        ref = None
        try:
            message = self.parse(raw)
            ref = message.get("ref")
            await self.execute(message)
        except Exception as e:
            log.error("command failed: %s: %s", type(e).__name__, e)
            return {"type": "result", "ref": ref, "ok": False, "error": describe(e)}
        return {"type": "result", "ref": ref, "ok": True}

    async def execute(self, message: Dict[str, Any]) -> None:
        kind = message["type"]
        if kind == "requestaccounts":
            await self.glue.request_accounts(RequestAccounts(message["id"], message["action"]))
        elif kind == "signmessage":
            await self.glue.sign_message(SignMessage(message["id"], message["action"]))
        elif kind == "sendtransaction":
            await self.glue.send_transaction(SendTransaction(message["id"], message["action"]))
        elif kind == "signtransaction":
            await self.glue.sign_transaction(SignTransaction(message["id"], message["action"]))
        elif kind == "switchethereumchain":
            await self.glue.switch_ethereum_chain(SwitchEthereumChain(message["id"], message["action"]))
        elif kind == "activatechain":
            await self.glue.activate_chain(ActivateChain(message["chainId"], message["rpcUrl"]))
        elif kind == "report":
            await self.glue.report(Report(message["format"], message.get("value")))
        else:
            raise CommandError(f"unknown command type: {kind}")


async def serve_glue(glue: Any, host: str = "127.0.0.1", port: int = 3001) -> GlueServer:
    """Start a :class:`GlueServer` for ``glue`` and return it once listening."""
    return await GlueServer(glue, host, port).start()
