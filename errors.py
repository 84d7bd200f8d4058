from typing import Optional


class TokenActionError(Exception):
    pass


class ConfigurationError(TokenActionError):
    pass


class AuthenticationError(TokenActionError):
    pass


class ResolutionError(TokenActionError):
    pass


class GitHubApiError(TokenActionError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class IssuanceError(GitHubApiError):
    pass
