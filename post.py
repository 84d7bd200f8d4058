"""Post-job step: revoke the token saved by main when revoke_token was set."""

import logging
import sys
import traceback

import requests

import actions
from errors import TokenActionError
from github_app import revoke_access_token
from storage import StateStore

logger = logging.getLogger(__name__)


def run(store: StateStore | None = None) -> int:
    actions.configure_logging()
    store = store or StateStore()

    token = store.get("token")
    if not token:
        logger.info("No GitHub Application token was saved for this job, nothing to revoke.")
        return 0

    actions.set_secret(token)
    try:
        revoke_access_token(
            token,
            base_api_url=actions.get_input("github_api_base_url") or None,
            proxy=actions.get_input("https_proxy") or None,
            ignore_environment_proxy=actions.get_boolean_input("ignore_environment_proxy"),
        )
    except (TokenActionError, requests.RequestException) as e:
        logger.debug(traceback.format_exc())
        actions.set_failed(f"Failed to revoke GitHub Application token; {e}")
        return 1

    logger.info("Successfully revoked GitHub Application token.")
    return 0


if __name__ == "__main__":
    sys.exit(run())
