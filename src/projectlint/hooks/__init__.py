"""Hooks domain: normalized events, IDE mappers, decision engine, hook log."""

from projectlint.hooks.engine import RuleEngine, evaluate_event, reduce_issues
from projectlint.hooks.events import Decision, EventKind, HookResult, ProjectLintEvent
from projectlint.hooks.logger import HookLogEntry, HookLogger, HookStats
from projectlint.hooks.mappers import (
    ClaudeMapper,
    EventMapError,
    EventMapper,
    GenericMapper,
    KiroMapper,
    WindsurfMapper,
    get_mapper,
)

__all__ = [
    "ClaudeMapper",
    "Decision",
    "EventKind",
    "EventMapError",
    "EventMapper",
    "GenericMapper",
    "HookLogEntry",
    "HookLogger",
    "HookResult",
    "HookStats",
    "KiroMapper",
    "ProjectLintEvent",
    "RuleEngine",
    "WindsurfMapper",
    "evaluate_event",
    "get_mapper",
    "reduce_issues",
]
