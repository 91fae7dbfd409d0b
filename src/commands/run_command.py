"""Scenario run command implementation."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional

from ..config import get_config
from ..errors import BackendUnavailable, FeatureLoadError
from ..pipeline.gst_backend import GstBackend
from ..scenario.features import discover_features, load_feature
from ..scenario.runner import BackendFactory, ScenarioRunner
from ..ui.console import ConsoleManager
from .cli_utils import EXIT_USAGE

logger = logging.getLogger(__name__)


def run_command(
    args: argparse.Namespace,
    console_manager: Optional[ConsoleManager] = None,
    backend_factory: Optional[BackendFactory] = None,
) -> int:
    """Handle the run subcommand.

    Args:
        args: Command line arguments
        console_manager: Optional console manager for rich output
        backend_factory: Pipeline backend factory (GStreamer if None)

    Returns:
        0 if every scenario passed, 1 if any failed, 2 on usage or loading errors
    """
    console_manager = console_manager or ConsoleManager(json_output=getattr(args, "json_output", False))

    config = get_config().with_overrides(strict_validation=args.strict_validation)
    try:
        config.validate()
    except ValueError as e:
        console_manager.print_error(f"Invalid configuration: {e}")
        return EXIT_USAGE

    paths = discover_features([Path(p) for p in args.features])
    if not paths:
        console_manager.print_error("No feature files found")
        return EXIT_USAGE

    try:
        features = [load_feature(path) for path in paths]
    except FeatureLoadError as e:
        logger.error(str(e))
        console_manager.print_error(str(e))
        return EXIT_USAGE

    runner = ScenarioRunner(
        backend_factory or GstBackend, config=config, fail_fast=args.fail_fast
    )
    runner.add_callback("scenario_started", console_manager.print_scenario_started)
    runner.add_callback("step_finished", console_manager.print_step)
    runner.add_callback("scenario_finished", console_manager.print_scenario_result)

    try:
        summary = runner.run(features, tags=args.tags)
    except BackendUnavailable as e:
        logger.error(str(e))
        console_manager.print_error(str(e))
        return 1

    if not summary.scenarios:
        logger.warning("No scenario matched the selection")
    console_manager.print_summary(summary)
    logger.info(f"Run finished: {runner.get_metrics()}")
    return summary.exit_code
