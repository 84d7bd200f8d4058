"""Workflow runner plumbing: inputs, outputs, masking, failure and logging.

Log records are written to stdout as workflow commands so the runner can
annotate errors and hide debug lines unless step debugging is enabled.
"""

import logging
import os
import sys
from typing import Set

from errors import ConfigurationError
from storage import append_file_command, escape_data, issue_command

GITHUB_OUTPUT_FILE = "GITHUB_OUTPUT"
TRUE_VALUES = ["true", "True", "TRUE"]
FALSE_VALUES = ["false", "False", "FALSE"]
REDACTED = "***"

_secrets: Set[str] = set()

logger = logging.getLogger(__name__)


def get_input(name: str, required: bool = False) -> str:
    value = os.getenv(f"INPUT_{name.replace(' ', '_').upper()}", "").strip()
    if required and not value:
        raise ConfigurationError(f"Input required and not supplied: {name}")
    return value


def get_boolean_input(name: str, default: bool = False) -> bool:
    value = get_input(name)
    if not value:
        return default
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ConfigurationError(
        f"Input does not meet YAML 1.2 \"Core Schema\" specification: {name}\n"
        f"Support boolean input list: `true | True | TRUE | false | False | FALSE`"
    )


def set_secret(value: str) -> None:
    """Ask the runner to mask value, and redact it from our own logs."""
    if not value:
        return
    _secrets.add(value)
    issue_command("add-mask", value)


def set_output(name: str, value: str) -> None:
    if not append_file_command(GITHUB_OUTPUT_FILE, name, value):
        issue_command("set-output", value, name=name)


def set_failed(message: str) -> None:
    logger.error(message)


def redact(text: str) -> str:
    # longest first so a secret containing another is fully hidden
    for secret in sorted(_secrets, key=len, reverse=True):
        text = text.replace(secret, REDACTED)
    return text


class SecretRedactingFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if _secrets:
            record.msg = redact(record.getMessage())
            record.args = None
        return True


class WorkflowCommandFormatter(logging.Formatter):
    COMMANDS = {
        logging.DEBUG: "debug",
        logging.WARNING: "warning",
        logging.ERROR: "error",
        logging.CRITICAL: "error",
    }

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        command = self.COMMANDS.get(record.levelno)
        if command is None:
            return message
        return f"::{command}::{escape_data(message)}"


class StdoutHandler(logging.StreamHandler):
    """StreamHandler that writes to whatever sys.stdout is at emit time."""

    def __init__(self):
        super().__init__(sys.stdout)

    @property
    def stream(self):
        return sys.stdout

    @stream.setter
    def stream(self, value):
        pass


def configure_logging() -> None:
    handler = StdoutHandler()
    handler.setFormatter(WorkflowCommandFormatter("%(message)s"))
    handler.addFilter(SecretRedactingFilter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        if isinstance(existing.formatter, WorkflowCommandFormatter):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)
    # requests' connection pool would log full URLs at debug level
    logging.getLogger("urllib3").setLevel(logging.INFO)
