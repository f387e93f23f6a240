"""
Homebrain Application Layer Package

Orchestration of the command pipeline and the worker side of the broker.
"""

from homebrain.app.pipeline import CommandPipeline, PipelineResult, PipelineStatus
from homebrain.app.dispatcher import Dispatcher
from homebrain.app.sessions import SessionStore
from homebrain.app.worker import QueueWorker

__all__ = [
    "CommandPipeline",
    "PipelineResult",
    "PipelineStatus",
    "Dispatcher",
    "SessionStore",
    "QueueWorker",
]
