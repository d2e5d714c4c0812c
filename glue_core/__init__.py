# glue_core/__init__.py
"""
Glue Core - Framework-agnostic concurrency and correlation engine.

This package provides the engine that bridges a single automation session to
an event-driven test protocol:
- ExclusiveTaskQueue: FIFO mutual exclusion around the automation resource
- ConditionDetector: mutually-exclusive condition predicates
- EventCorrelator: pending event and correlation id bookkeeping
- LivenessWatcher: background polling and app re-activation
- GlueSession: the facade composing the above
- Waits, Config, Repository: retry utilities, timing presets, object maps
"""

from glue_core.config import GlueConfig, TimeoutSettings
from glue_core.correlator import EventCorrelator, PendingEvent
from glue_core.detector import Condition, ConditionDetector, Detection
from glue_core.events import EventEmitter, GlueEvent
from glue_core.exceptions import (
    ActionError,
    ConfigError,
    ElementNotFoundError,
    FatalError,
    GlueError,
    InvariantViolation,
    ResourceError,
    SessionClosedError,
    TimeoutError,
    UnsupportedCommandError,
)
from glue_core.interfaces import IResource
from glue_core.lock import ExclusiveTaskQueue
from glue_core.repository import AppConfig, Repository
from glue_core.session import GlueSession
from glue_core.watcher import LivenessWatcher

__all__ = [
    "GlueConfig",
    "TimeoutSettings",
    "EventCorrelator",
    "PendingEvent",
    "Condition",
    "ConditionDetector",
    "Detection",
    "EventEmitter",
    "GlueEvent",
    "ActionError",
    "ConfigError",
    "ElementNotFoundError",
    "FatalError",
    "GlueError",
    "InvariantViolation",
    "ResourceError",
    "SessionClosedError",
    "TimeoutError",
    "UnsupportedCommandError",
    "IResource",
    "ExclusiveTaskQueue",
    "AppConfig",
    "Repository",
    "GlueSession",
    "LivenessWatcher",
]

__version__ = "1.0.0"
