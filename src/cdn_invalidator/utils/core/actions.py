"""
CI runner integration: GitHub Actions workflow commands, inputs and outputs.

Outside of a GitHub Actions runner the helpers degrade to plain log lines.
"""

import os
import sys
import uuid
from contextlib import contextmanager
from typing import Iterator, Optional

from .logger import get_logger

logger = get_logger(__name__, utility="general")


def is_github_actions() -> bool:
    return os.getenv("GITHUB_ACTIONS", "").lower() == "true"


def _escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def issue_command(command: str, message: str = "") -> None:
    """Write a ``::command::message`` line straight to stdout"""
    sys.stdout.write(f"::{command}::{_escape_data(message)}\n")
    sys.stdout.flush()


def get_input(name: str, default: str = "") -> str:
    """Read an action input the way the runner passes it (INPUT_<NAME>)."""
    value = os.getenv(f"INPUT_{name.replace(' ', '_').upper()}")
    if value is None:
        return default
    return value.strip()


def annotate_warning(message: str) -> None:
    logger.warning(message)
    if is_github_actions():
        issue_command("warning", message)


def annotate_error(message: str) -> None:
    logger.error(message)
    if is_github_actions():
        issue_command("error", message)


@contextmanager
def group(title: str) -> Iterator[None]:
    """Fold the log lines emitted inside the block under ``title``"""
    if is_github_actions():
        issue_command("group", title)
    else:
        logger.info(f"--- {title} ---")
    try:
        yield
    finally:
        if is_github_actions():
            issue_command("endgroup")


def set_output(name: str, value: str, output_file: Optional[str] = None) -> None:
    """
    Publish a step output

    Appends to the file named by $GITHUB_OUTPUT; without one the output is
    only logged.
    """
    path = output_file or os.getenv("GITHUB_OUTPUT")
    value = str(value)
    if not path:
        logger.info(f"Output {name}={value}")
        return

    with open(path, "a", encoding="utf-8") as fh:
        if "\n" in value:
            delimiter = f"ghadelimiter_{uuid.uuid4()}"
            fh.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
        else:
            fh.write(f"{name}={value}\n")
    logger.debug(f"Set output {name}")
