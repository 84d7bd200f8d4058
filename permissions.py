from enum import StrEnum
from typing import Dict

VALID_LEVELS = ["read", "write"]


class PermissionErrorKind(StrEnum):
    FORMAT = "format"
    EMPTY_NAME = "empty_name"
    EMPTY_LEVEL = "empty_level"
    DASH = "dash"
    LEVEL = "level"


class InvalidPermissionError(ValueError):
    def __init__(self, message: str, kind: PermissionErrorKind):
        super().__init__(message)
        self.kind = kind


def parse_permissions(permission_input: str) -> Dict[str, str]:
    """Parse "name:level" pairs separated by commas into {name: level}.

    Empty entries are skipped, so "" and "contents:write," are fine. The
    first bad entry raises InvalidPermissionError; a repeated name keeps
    the last level given.
    """
    permissions: Dict[str, str] = {}

    for entry in permission_input.split(","):
        trimmed = entry.strip()
        if not trimmed:
            continue

        parts = trimmed.split(":")
        if len(parts) != 2:
            raise InvalidPermissionError(
                f'Invalid permission entry "{trimmed}". Expected format: "name:level" '
                f'(e.g., "contents:write", "pull_requests:read").',
                PermissionErrorKind.FORMAT,
            )

        name = parts[0].strip()
        level = parts[1].strip()

        if not name:
            raise InvalidPermissionError(
                f'Invalid permission entry "{trimmed}". Permission name cannot be empty.',
                PermissionErrorKind.EMPTY_NAME,
            )

        if not level:
            raise InvalidPermissionError(
                f'Invalid permission entry "{trimmed}". Permission level cannot be empty.',
                PermissionErrorKind.EMPTY_LEVEL,
            )

        # workflow "permissions:" blocks spell these with dashes
        if "-" in name:
            suggestion = name.replace("-", "_")
            raise InvalidPermissionError(
                f'Invalid permission key "{name}". GitHub App permissions use underscores, not dashes. '
                f'Did you mean "{suggestion}"? '
                f'(Note: GitHub Actions workflow permissions use dashes like "pull-requests", '
                f'but GitHub App token permissions use underscores like "pull_requests".)',
                PermissionErrorKind.DASH,
            )

        if level not in VALID_LEVELS:
            raise InvalidPermissionError(
                f'Invalid permission level "{level}" for "{name}". '
                f'Must be one of: {", ".join(VALID_LEVELS)}.',
                PermissionErrorKind.LEVEL,
            )

        permissions[name] = level

    return permissions
