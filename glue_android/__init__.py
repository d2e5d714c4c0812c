# glue_android/__init__.py
"""
Glue Android - MetaMask on Android, driven through Appium.

- AppiumResource: the Appium session as the glue's exclusive resource
- MetaMask: screen knowledge (unlock, conditions, payloads, wallet import)
- MetaMaskAndroidGlue: test-protocol command handlers
- GlueServer: WebSocket transport for events and commands
"""

import os

DATA_DIR = os.path.join(os.path.dirname(__file__), "data")


def default_object_map_path() -> str:
    """Path of the bundled MetaMask object map."""
    return os.path.join(DATA_DIR, "metamask.yaml")


from glue_android.driver import AppiumResource  # noqa: E402
from glue_android.glue import MetaMaskAndroidGlue  # noqa: E402
from glue_android.metamask import MetaMask  # noqa: E402
from glue_android.server import GlueServer, serve_glue  # noqa: E402

__all__ = [
    "default_object_map_path",
    "AppiumResource",
    "MetaMask",
    "MetaMaskAndroidGlue",
    "GlueServer",
    "serve_glue",
]

__version__ = "1.0.0"
