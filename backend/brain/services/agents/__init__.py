"""
Source agents: one adapter per external data source.
"""
from brain.services.agents.base import (
    AgentAction,
    SourceAgent,
    UnimplementedAgent,
    UnknownActionError,
)
from brain.services.agents.slack import SlackAction, SlackAgent

__all__ = [
    "AgentAction",
    "SlackAction",
    "SlackAgent",
    "SourceAgent",
    "UnimplementedAgent",
    "UnknownActionError",
]
