import os
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

GITHUB_STATE_FILE = "GITHUB_STATE"
STATE_PREFIX = "STATE_"


def escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def _escape_property(value: str) -> str:
    return escape_data(value).replace(":", "%3A").replace(",", "%2C")


def issue_command(command: str, value: str, **properties: str) -> None:
    """Print a ::command prop=value::message line for the runner."""
    props = ",".join(f"{key}={_escape_property(str(val))}" for key, val in properties.items())
    head = f"{command} {props}" if props else command
    print(f"::{head}::{escape_data(value)}", flush=True)


def append_file_command(env_name: str, key: str, value: str) -> bool:
    """Append key=value to the runner file named by env_name.

    Returns False when the runner did not provide that file.
    """
    path = os.getenv(env_name)
    if not path:
        return False

    delimiter = f"ghadelimiter_{uuid.uuid4()}"
    if delimiter in key or delimiter in value:
        raise ValueError(f"Unexpected input: value should not contain the delimiter {delimiter}")

    with open(path, "a", encoding="utf-8") as f:
        f.write(f"{key}<<{delimiter}\n{value}\n{delimiter}\n")
    return True


class StateStore:
    """State handed from the main step to the post step of the same job."""

    def __init__(self, env_name: str = GITHUB_STATE_FILE):
        self.env_name = env_name

    def save(self, name: str, value: str) -> None:
        if not append_file_command(self.env_name, name, value):
            # runner masks the value, set_secret ran before this
            issue_command("save-state", value, name=name)

    def get(self, name: str) -> str:
        return os.getenv(f"{STATE_PREFIX}{name}", "")


@dataclass
class RunContext:
    """What the issuance flow may hand on to later pipeline stages.

    persist_for_revocation is only called when the caller asked for the
    token to be revoked after the job.
    """

    persist_for_revocation: Optional[Callable[[str], None]] = None
    saved: Dict[str, str] = field(default_factory=dict)

    def persist_token(self, token: str) -> bool:
        if self.persist_for_revocation is None:
            return False
        self.persist_for_revocation(token)
        self.saved["token"] = token
        return True


def revocation_context(store: Optional[StateStore] = None) -> RunContext:
    store = store or StateStore()
    return RunContext(persist_for_revocation=lambda token: store.save("token", token))
