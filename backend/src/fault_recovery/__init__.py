"""
Fault recovery for protected operations: failure classification, bounded
backoff-scheduled retries and the controller state machine hosts render.
"""
from .actions import derive_actions
from .classification import CLASSIFICATION_RULES, ClassificationRule, classify, user_message
from .config import AUTHENTICATION, GITHUB_API, MCP_SERVICES, RecoveryConfig, preset
from .controller import RecoveryController
from .events import FanOutEventSink, LoggingEventSink, MemoryEventSink
from .exceptions import (
    ControllerDisposedError,
    RecoveryConfigError,
    RecoveryError,
    UpstreamError,
)
from .host import ProtectedOperation
from .integrations import fetch_json, get_json, translate_http_error
from .timers import AsyncioScheduler, ManualScheduler, RecoveryTimers
from .types import (
    ActionKind,
    FailureInfo,
    FailureKind,
    RecoveryAction,
    RecoveryEvent,
    RecoverySnapshot,
    RecoveryStatus,
)


__all__ = [
    # Controller
    'RecoveryController',
    'RecoveryConfig',
    'preset',
    'GITHUB_API',
    'MCP_SERVICES',
    'AUTHENTICATION',

    # Classification
    'classify',
    'user_message',
    'ClassificationRule',
    'CLASSIFICATION_RULES',

    # Types
    'FailureKind',
    'FailureInfo',
    'RecoveryStatus',
    'RecoverySnapshot',
    'RecoveryAction',
    'ActionKind',
    'RecoveryEvent',
    'derive_actions',

    # Timers
    'AsyncioScheduler',
    'ManualScheduler',
    'RecoveryTimers',

    # Observability
    'LoggingEventSink',
    'MemoryEventSink',
    'FanOutEventSink',

    # Exceptions
    'RecoveryError',
    'RecoveryConfigError',
    'ControllerDisposedError',
    'UpstreamError',

    # Host and HTTP integration
    'ProtectedOperation',
    'translate_http_error',
    'fetch_json',
    'get_json',
]
