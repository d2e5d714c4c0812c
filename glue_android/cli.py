# glue_android/cli.py
"""
@file cli.py
@brief Command-line entry point: serve the glue, launch the test page, print the report.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from glue_core.config import GlueConfig, available_presets
from glue_core.events import Report
from glue_core.exceptions import FatalError, GlueError
from glue_core.repository import Repository

from . import default_object_map_path
from .glue import MetaMaskAndroidGlue
from .logsetup import setup_logging
from .server import serve_glue

log = logging.getLogger(__name__)

DEFAULT_TEST_URL = "https://wallet-test-framework.herokuapp.com/"


def build_launch_url(test_url: str, glue_url: str) -> str:
    """Attach the glue address to the test page as a ``#glue=`` fragment."""
    base = test_url.split("#", 1)[0]
    return f"{base}#glue={glue_url}"


def report_text(report: Report) -> str:
    if isinstance(report.value, str):
        return report.value
    return json.dumps(report.value)


def _load_config(args: argparse.Namespace) -> GlueConfig:
    if args.config:
        return GlueConfig.from_yaml(args.config, preset=args.preset)
    return GlueConfig.build_from(preset=args.preset or "default")


async def run(args: argparse.Namespace) -> int:
    loop = asyncio.get_running_loop()
    fatal: asyncio.Future = loop.create_future()

    def supervisor(error: FatalError) -> None:
        if not fatal.done():
            fatal.set_result(error)

    try:
        repo = Repository(args.object_map or default_object_map_path())
        repo.override_app(appium_host=args.appium_host, appium_port=args.appium_port)
        config = _load_config(args)
        glue = MetaMaskAndroidGlue(repo, config, supervisor=supervisor)
    except GlueError as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1

    server = None
    try:
        server = await serve_glue(glue, args.host, args.port)
        await glue.start(setup=not args.no_setup)
        await glue.launch(build_launch_url(args.test_url, server.url))

        done, _ = await asyncio.wait(
            {glue.report_ready, fatal}, return_when=asyncio.FIRST_COMPLETED
        )
        if fatal in done:
            error = fatal.result()
            print(f"Fatal: {error}", file=sys.stderr)
            print(error.get_cause_traceback(), file=sys.stderr)
            return 1

        sys.stdout.write(report_text(glue.report_ready.result()))
        sys.stdout.flush()
        return 0
    except Exception as e:
        log.debug("run failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        if glue.started:
            await glue.session.stop()
        if server is not None:
            await server.close()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    argv = argv if argv is not None else sys.argv[1:]

    p = argparse.ArgumentParser(
        prog="glue-android",
        description="Wallet test glue for MetaMask on Android (Appium)",
    )
    p.add_argument("--test-url", default=DEFAULT_TEST_URL, help="Test page to open in the phone's browser")
    p.add_argument("--host", default="127.0.0.1", help="Address the glue WebSocket listens on")
    p.add_argument("--port", type=int, default=3001, help="Port the glue WebSocket listens on")
    p.add_argument("--config", default=None, help="Optional timing config YAML")
    p.add_argument("--preset", default=None, choices=sorted(available_presets()), help="Timing preset")
    p.add_argument("--object-map", default=None, help="Object map YAML (defaults to the bundled MetaMask map)")
    p.add_argument("--appium-host", default=None, help="Override the Appium server host")
    p.add_argument("--appium-port", type=int, default=None, help="Override the Appium server port")
    p.add_argument("--no-setup", action="store_true", help="Skip the wallet import (wallet already set up)")
    p.add_argument("--verbose", action="store_true", help="Debug output on stderr")
    p.add_argument("--log-file", default=None, help="Optional log file path")

    args = p.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO, args.log_file)

    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return 130
