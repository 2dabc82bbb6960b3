"""
Inkbook entry point.

Runs the studio booking console, or a one-shot walkthrough of the
booking, conflict, and cancellation flow.

Usage:
    Walkthrough:  python main.py demo
    Console mode: python main.py console
"""

import logging
import sys

from inkbook.config import settings

logger = logging.getLogger(__name__)


def _run_demo_mode() -> None:
    """Play the scripted booking and conflict scenarios."""
    from console_demo import ConsoleSession

    for scenario in ("booking", "conflict"):
        logger.info("Running scenario '%s' for %s", scenario, settings.studio.name)
        ConsoleSession().run_scenario(scenario)


def _run_console_mode() -> None:
    """Start the interactive booking console."""
    from console_demo import ConsoleSession

    session = ConsoleSession()
    session.run()


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "demo":
        _run_demo_mode()
    else:
        _run_console_mode()
