"""Step vocabulary command implementation."""
from __future__ import annotations

import argparse
from typing import Optional

from ..steps.parser import PhraseParser
from ..ui.console import ConsoleManager


def steps_command(args: argparse.Namespace, console_manager: Optional[ConsoleManager] = None) -> int:
    """Handle the steps subcommand: print every recognized step phrase."""
    console_manager = console_manager or ConsoleManager(json_output=getattr(args, "json_output", False))
    console_manager.print_steps(PhraseParser().usages())
    return 0
