import logging
import os
import time
from typing import Any, Dict, Optional, Type

import jwt
import requests

from errors import AuthenticationError, GitHubApiError, IssuanceError
from models import AccessToken, Application, Installation

GITHUB_API_URL = os.getenv("GITHUB_API_URL", "https://api.github.com")
JWT_EXPIRY = int(os.getenv("APP_JWT_EXPIRY", "600"))
REQUEST_TIMEOUT = 30

logger = logging.getLogger(__name__)


def _build_session(proxy: Optional[str] = None,
                   ignore_environment_proxy: bool = False) -> requests.Session:
    session = requests.Session()
    session.headers.update({
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
        "User-Agent": "github-app-token",
    })
    if ignore_environment_proxy:
        # also stops requests from reading HTTP(S)_PROXY / NO_PROXY
        session.trust_env = False
    if proxy:
        session.proxies = {"http": proxy, "https": proxy}
    return session


def _raise_for_status(resp: requests.Response, method: str, path: str,
                      error_cls: Type[GitHubApiError] = GitHubApiError) -> None:
    if resp.ok:
        return
    detail = ""
    try:
        body = resp.json()
        detail = body.get("message", "") if isinstance(body, dict) else ""
    except ValueError:
        detail = resp.text
    message = f"GitHub API {method} {path} failed with status {resp.status_code}"
    if detail:
        message = f"{message}: {detail}"
    raise error_cls(message, status_code=resp.status_code)


class GitHubApplication:
    """Talks to the GitHub REST API as a GitHub App.

    Every request is signed with a fresh app JWT; nothing is cached between
    calls apart from the application metadata fetched by authenticate().
    """

    def __init__(self,
                 application_id: str,
                 private_key: str,
                 base_api_url: Optional[str] = None,
                 proxy: Optional[str] = None,
                 ignore_environment_proxy: bool = False,
                 session: Optional[requests.Session] = None):
        self.application_id = str(application_id)
        self.private_key = private_key
        self.base_api_url = (base_api_url or GITHUB_API_URL).rstrip("/")
        self.session = session or _build_session(proxy, ignore_environment_proxy)
        self.metadata: Optional[Application] = None

    @property
    def name(self) -> str:
        return self.metadata.name if self.metadata else ""

    def _build_app_jwt(self) -> str:
        # backdated for runner clock drift; GitHub caps exp - iat at 10 minutes
        issued_at = int(time.time()) - 60
        payload = {
            "iat": issued_at,
            "exp": issued_at + JWT_EXPIRY,
            "iss": self.application_id,
        }
        return jwt.encode(payload, self.private_key, algorithm="RS256")

    def _request(self, method: str, path: str, json: Any = None) -> requests.Response:
        headers = {"Authorization": f"Bearer {self._build_app_jwt()}"}
        return self.session.request(
            method,
            f"{self.base_api_url}{path}",
            headers=headers,
            json=json,
            timeout=REQUEST_TIMEOUT,
        )

    def authenticate(self) -> Application:
        """Check the credentials by fetching the app itself."""
        try:
            self._build_app_jwt()
        except (jwt.PyJWTError, ValueError, TypeError) as e:
            raise AuthenticationError(f"Unable to sign application JWT: {e}") from e

        try:
            resp = self._request("GET", "/app")
            _raise_for_status(resp, "GET", "/app")
            self.metadata = Application.model_validate(resp.json())
        except (GitHubApiError, requests.RequestException) as e:
            raise AuthenticationError(str(e)) from e
        except ValueError as e:
            # also covers pydantic's ValidationError
            raise AuthenticationError(f"Unexpected response from GET /app: {e}") from e
        return self.metadata

    def _get_installation(self, path: str) -> Optional[Installation]:
        resp = self._request("GET", path)
        if resp.status_code == 404:
            logger.debug(f"No installation at {path}")
            return None
        _raise_for_status(resp, "GET", path)
        return Installation.model_validate(resp.json())

    def get_organization_installation(self, organization: str) -> Optional[Installation]:
        return self._get_installation(f"/orgs/{organization}/installation")

    def get_repository_installation(self, owner: str, repo: str) -> Optional[Installation]:
        return self._get_installation(f"/repos/{owner}/{repo}/installation")

    def get_installation_access_token(self,
                                      installation_id: int,
                                      permissions: Dict[str, str]) -> AccessToken:
        """Exchange the app JWT for an installation token.

        An empty permissions dict sends no restriction, so the token carries
        everything the installation was granted.
        """
        path = f"/app/installations/{installation_id}/access_tokens"
        body = {"permissions": permissions} if permissions else {}
        resp = self._request("POST", path, json=body)
        _raise_for_status(resp, "POST", path, IssuanceError)
        return AccessToken.model_validate(resp.json())


def create_application(application_id: str,
                       private_key: str,
                       base_api_url: Optional[str] = None,
                       proxy: Optional[str] = None,
                       ignore_environment_proxy: bool = False) -> GitHubApplication:
    app = GitHubApplication(
        application_id,
        private_key,
        base_api_url=base_api_url,
        proxy=proxy,
        ignore_environment_proxy=ignore_environment_proxy,
    )
    app.authenticate()
    return app


def revoke_access_token(token: str,
                        base_api_url: Optional[str] = None,
                        proxy: Optional[str] = None,
                        ignore_environment_proxy: bool = False,
                        session: Optional[requests.Session] = None) -> None:
    """Invalidate an installation token using the token itself."""
    session = session or _build_session(proxy, ignore_environment_proxy)
    path = "/installation/token"
    resp = session.delete(
        f"{(base_api_url or GITHUB_API_URL).rstrip('/')}{path}",
        headers={"Authorization": f"token {token}"},
        timeout=REQUEST_TIMEOUT,
    )
    if resp.status_code != 204:
        _raise_for_status(resp, "DELETE", path)
