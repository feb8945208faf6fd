"""Alarm evaluation and capture dispatch."""

from fencewatch.alarms.dispatcher import AlarmDispatcher, CooldownScope, evaluate_alarms

__all__ = ["AlarmDispatcher", "CooldownScope", "evaluate_alarms"]
