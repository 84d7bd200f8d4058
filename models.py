from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Dict, Union

from pydantic import BaseModel, ConfigDict


class Application(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    slug: str | None = None


class Installation(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    app_id: int | None = None
    target_type: str | None = None


class AccessToken(BaseModel):
    model_config = ConfigDict(extra="ignore")

    token: str
    expires_at: datetime
    permissions: Dict[str, str] = {}
    repository_selection: str | None = None


# === INSTALLATION RESOLUTION ===
@dataclass(frozen=True)
class ByOrganization:
    name: str

    def describe(self) -> str:
        return f"organization: {self.name}"


@dataclass(frozen=True)
class ByRepository:
    owner: str
    repo: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    def describe(self) -> str:
        return f"repository: {self.full_name}"


ResolutionStrategy = Union[ByOrganization, ByRepository]


# === FLOW RESULT ===
class ErrorKind(StrEnum):
    CONFIGURATION = "configuration"
    AUTHENTICATION = "authentication"
    RESOLUTION = "resolution"
    VALIDATION = "validation"
    ISSUANCE = "issuance"


@dataclass(frozen=True)
class Ok:
    value: AccessToken


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str
    detail: str | None = None


Result = Union[Ok, Err]
