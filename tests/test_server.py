# tests/test_server.py
"""
Tests for the WebSocket command transport.
"""

import asyncio
import json

from websockets.asyncio.client import connect

from glue_android.server import GlueServer
from glue_core.events import EventEmitter, GlueEvent, SignMessageEvent
from glue_core.exceptions import UnsupportedCommandError


class FakeGlue:
    """Records the actions each command was dispatched to."""

    def __init__(self):
        self.events = EventEmitter()
        self.calls = []

    async def request_accounts(self, action):
        self.calls.append(("request_accounts", action))

    async def sign_message(self, action):
        self.calls.append(("sign_message", action))

    async def send_transaction(self, action):
        self.calls.append(("send_transaction", action))

    async def sign_transaction(self, action):
        raise UnsupportedCommandError("signTransaction")

    async def switch_ethereum_chain(self, action):
        raise UnsupportedCommandError("switchEthereumChain")

    async def activate_chain(self, action):
        self.calls.append(("activate_chain", action))

    async def report(self, action):
        self.calls.append(("report", action))


def _dispatch(server, message):
    raw = message if isinstance(message, str) else json.dumps(message)
    return asyncio.run(server.dispatch(raw))


class TestDispatch:
    """Validation and routing of inbound commands."""

    def test_resolving_command(self):
        glue = FakeGlue()
        server = GlueServer(glue)

        reply = _dispatch(server, {"type": "signmessage", "id": "u1", "action": "approve", "ref": 3})

        assert reply == {"type": "result", "ref": 3, "ok": True}
        name, action = glue.calls[0]
        assert name == "sign_message"
        assert (action.id, action.action) == ("u1", "approve")

    def test_activate_chain(self):
        glue = FakeGlue()
        server = GlueServer(glue)

        _dispatch(server, {"type": "activatechain", "chainId": "1337", "rpcUrl": "http://10.0.2.2:8545"})

        name, action = glue.calls[0]
        assert name == "activate_chain"
        assert action.chain_id == "1337"
        assert action.rpc_url == "http://10.0.2.2:8545"

    def test_report(self):
        glue = FakeGlue()
        server = GlueServer(glue)

        _dispatch(server, {"type": "report", "format": "tap", "value": "TAP version 13"})

        assert glue.calls[0][1].value == "TAP version 13"

    def test_unsupported_command_reply(self):
        server = GlueServer(FakeGlue())

        reply = _dispatch(server, {"type": "signtransaction", "id": "u1", "action": "approve", "ref": "a"})

        assert reply["ok"] is False
        assert reply["ref"] == "a"
        assert reply["error"]["type"] == "UnsupportedCommandError"

    def test_schema_violation(self):
        glue = FakeGlue()
        server = GlueServer(glue)

        reply = _dispatch(server, {"type": "signmessage", "id": "u1"})

        assert reply["ok"] is False
        assert "schema validation failed" in reply["error"]["message"]
        assert glue.calls == []

    def test_unknown_type(self):
        reply = _dispatch(GlueServer(FakeGlue()), {"type": "dance"})
        assert reply["ok"] is False

    def test_invalid_json(self):
        reply = _dispatch(GlueServer(FakeGlue()), "{not json")
        assert reply["ok"] is False
        assert reply["ref"] is None


class TestWebSocket:
    """End to end over a real socket."""

    def test_command_and_broadcast(self):
        glue = FakeGlue()

        async def main():
            server = await GlueServer(glue, port=0).start()
            try:
                async with connect(server.url) as ws:
                    await ws.send(json.dumps({"type": "requestaccounts", "id": "u1", "action": "approve", "ref": 1}))
                    reply = json.loads(await asyncio.wait_for(ws.recv(), 2))

                    glue.events.emit(GlueEvent("signmessage", "u2", SignMessageEvent("hi")))
                    event = json.loads(await asyncio.wait_for(ws.recv(), 2))
            finally:
                await server.close()
            return server, reply, event

        server, reply, event = asyncio.run(main())
        assert reply == {"type": "result", "ref": 1, "ok": True}
        assert event == {"type": "event", "kind": "signmessage", "id": "u2", "message": "hi"}
        assert glue.events.listener_count("*") == 0

    def test_url_defaults(self):
        server = GlueServer(FakeGlue(), port=3001)
        assert server.url == "ws://127.0.0.1:3001/"
