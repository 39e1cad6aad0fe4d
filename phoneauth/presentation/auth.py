from typing import Annotated, Optional

from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from phoneauth.application.tokens import TokenService
from phoneauth.domain.entities import AccessClaims, IdentityKind
from phoneauth.domain.errors import InvalidToken, Unauthorized
from phoneauth.presentation.dependencies import get_token_service

# auto_error=False so a missing header goes through our envelope as a 401
bearer_scheme = HTTPBearer(auto_error=False)


def _require(kind: IdentityKind):
    def dependency(
        tokens: Annotated[TokenService, Depends(get_token_service)],
        auth: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    ) -> AccessClaims:
        if auth is None or not auth.credentials:
            raise Unauthorized("missing bearer token")
        claims = tokens.verify_access(auth.credentials)
        if claims.role is not kind:
            raise InvalidToken()
        return claims

    return dependency


require_driver = _require(IdentityKind.DRIVER)
require_dispatcher = _require(IdentityKind.DISPATCHER)
