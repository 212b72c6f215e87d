#!/usr/bin/env python3
"""
Command endpoints for the board digest pipeline.

Each major stage (harvest, summarize, post, schedule, data) is handled by
a dedicated command class.
"""

from typing import Dict, Type
from .base import BaseCommand
from .harvest import HarvestCommand
from .summarize import SummarizeCommand
from .post import PostCommand
from .schedule import ScheduleCommand
from .data import DataCommand

# Command registry for easy extension
COMMANDS: Dict[str, Type[BaseCommand]] = {
    'harvest': HarvestCommand,
    'summarize': SummarizeCommand,
    'post': PostCommand,
    'schedule': ScheduleCommand,
    'data': DataCommand,
}

def get_command(command_name: str) -> BaseCommand:
    """Get a command instance by name."""
    if command_name not in COMMANDS:
        available = ', '.join(COMMANDS.keys())
        raise ValueError(f"Unknown command '{command_name}'. Available: {available}")

    command_class = COMMANDS[command_name]
    return command_class()

def list_commands() -> Dict[str, str]:
    """Get list of available commands with descriptions."""
    commands = {}
    for name, command_class in COMMANDS.items():
        commands[name] = getattr(command_class, '__doc__', 'No description available')
    return commands
