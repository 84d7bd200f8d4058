import logging
import os
import sys
import traceback
from typing import Optional

import requests

import actions
from errors import (
    AuthenticationError,
    ConfigurationError,
    ResolutionError,
    TokenActionError,
)
from github_app import GitHubApplication, create_application
from models import (
    AccessToken,
    ByOrganization,
    ByRepository,
    Err,
    ErrorKind,
    Ok,
    ResolutionStrategy,
    Result,
)
from permissions import InvalidPermissionError, parse_permissions
from storage import RunContext, revocation_context

REPOSITORY_ENV = "GITHUB_REPOSITORY"
INIT_FAILURE_MESSAGE = "Failed to initialize GitHub Application connection using provided id and private key"

logger = logging.getLogger(__name__)


def select_strategy(organization: Optional[str], repository: Optional[str]) -> ResolutionStrategy:
    """Pick how to find the installation; an organization always wins."""
    if not repository or not repository.strip():
        raise ConfigurationError(
            f"The repository value was missing from the environment as '{REPOSITORY_ENV}'"
        )

    if organization:
        return ByOrganization(organization)

    parts = repository.split("/")
    owner = parts[0]
    repo = parts[1] if len(parts) > 1 else ""
    return ByRepository(owner, repo)


def resolve_installation(app: GitHubApplication, strategy: ResolutionStrategy) -> int:
    logger.info(f"Obtaining application installation for {strategy.describe()}")

    if isinstance(strategy, ByOrganization):
        installation = app.get_organization_installation(strategy.name)
        not_found = f"GitHub Application is not installed on the specified organization: {strategy.name}"
    else:
        installation = app.get_repository_installation(strategy.owner, strategy.repo)
        not_found = f"GitHub Application is not installed on repository: {strategy.full_name}"

    if installation is None or not installation.id:
        raise ResolutionError(not_found)
    return installation.id


def issue_token(app: GitHubApplication,
                organization: Optional[str],
                repository: Optional[str],
                permission_input: Optional[str],
                context: RunContext) -> Result:
    """Resolve the installation and request a token for it.

    Never raises: every failure comes back as Err so the caller decides
    how to report it.
    """
    try:
        strategy = select_strategy(organization, repository)
    except ConfigurationError as e:
        return Err(ErrorKind.CONFIGURATION, str(e), traceback.format_exc())

    try:
        installation_id = resolve_installation(app, strategy)
    except (TokenActionError, requests.RequestException, ValueError) as e:
        return Err(ErrorKind.RESOLUTION, str(e), traceback.format_exc())

    try:
        permissions = parse_permissions(permission_input) if permission_input else {}
    except InvalidPermissionError as e:
        return Err(ErrorKind.VALIDATION, str(e), traceback.format_exc())

    if permissions:
        logger.info(f"Requesting limitation on GitHub Application permissions to only: {permissions}")

    try:
        access_token = app.get_installation_access_token(installation_id, permissions)
    except (TokenActionError, requests.RequestException, ValueError) as e:
        return Err(ErrorKind.ISSUANCE, str(e), traceback.format_exc())

    # must happen before anything else can log the token
    actions.set_secret(access_token.token)

    try:
        if context.persist_token(access_token.token):
            logger.info("Saved token for revocation once the job is complete")
    except (OSError, ValueError) as e:
        return Err(ErrorKind.CONFIGURATION, f"Unable to save token for revocation: {e}", traceback.format_exc())

    return Ok(access_token)


def _initialize_application() -> GitHubApplication:
    private_key = actions.get_input("application_private_key", required=True)
    application_id = actions.get_input("application_id", required=True)
    return create_application(
        application_id,
        private_key,
        base_api_url=actions.get_input("github_api_base_url") or None,
        proxy=actions.get_input("https_proxy") or None,
        ignore_environment_proxy=actions.get_boolean_input("ignore_environment_proxy"),
    )


def fail(result: Err) -> int:
    if result.detail:
        logger.debug(result.detail)
    actions.set_failed(result.message)
    return 1


def report(access_token: AccessToken) -> None:
    actions.set_output("token", access_token.token)
    logger.info(
        f"Token expires at {access_token.expires_at.isoformat()} "
        f"with permissions {access_token.permissions}"
    )
    logger.info("Successfully generated an access token for application.")


def run() -> int:
    actions.configure_logging()

    try:
        app = _initialize_application()
    except (ConfigurationError, AuthenticationError) as e:
        kind = ErrorKind.CONFIGURATION if isinstance(e, ConfigurationError) else ErrorKind.AUTHENTICATION
        logger.error(str(e))
        return fail(Err(kind, INIT_FAILURE_MESSAGE, traceback.format_exc()))

    logger.info(f"Found GitHub Application: {app.name}")

    try:
        context = revocation_context() if actions.get_boolean_input("revoke_token") else RunContext()
    except ConfigurationError as e:
        return fail(Err(ErrorKind.CONFIGURATION, str(e), traceback.format_exc()))

    result = issue_token(
        app,
        organization=actions.get_input("organization"),
        repository=os.getenv(REPOSITORY_ENV),
        permission_input=actions.get_input("permissions"),
        context=context,
    )
    if isinstance(result, Err):
        return fail(result)

    try:
        report(result.value)
    except (OSError, ValueError) as e:
        return fail(Err(ErrorKind.CONFIGURATION, f"Unable to write step output: {e}", traceback.format_exc()))
    return 0


if __name__ == "__main__":
    sys.exit(run())
