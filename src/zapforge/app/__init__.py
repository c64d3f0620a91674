"""Startup orchestration: context, pipeline, mode dispatch and lifecycle."""

from zapforge.app.application import Application
from zapforge.app.collaborators import Collaborators, default_collaborators
from zapforge.app.context import ExecutionContext
from zapforge.app.dispatcher import ModeDispatcher, url_line
from zapforge.app.lifecycle import ApplicationLifecycle
from zapforge.app.modes import classify_command
from zapforge.app.pipeline import PipelineSequencer, Stage, full_stages, generation_stages

__all__ = [
    "Application",
    "ApplicationLifecycle",
    "Collaborators",
    "ExecutionContext",
    "ModeDispatcher",
    "PipelineSequencer",
    "Stage",
    "classify_command",
    "default_collaborators",
    "full_stages",
    "generation_stages",
    "url_line",
]
