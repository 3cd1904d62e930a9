"""DI provider for the auth domain."""

import logging

from dishka import Provider, Scope, from_context, provide
from starlette.requests import Request

from archivist.config import Config
from archivist.domain.auth.model.identity import Identity, Principal
from archivist.domain.auth.port.repository import UserRepository
from archivist.domain.auth.service.token import TokenService

logger = logging.getLogger(__name__)


class AuthProvider(Provider):
    """Resolves the caller of each HTTP request."""

    request = from_context(provides=Request, scope=Scope.REQUEST)

    @provide(scope=Scope.APP)
    def get_token_service(self, config: Config) -> TokenService:
        return TokenService(config=config.auth.jwt)

    @provide(scope=Scope.REQUEST)
    async def get_identity(
        self,
        request: Request,
        token_service: TokenService,
        user_repo: UserRepository,
    ) -> Identity:
        """Resolve Identity from the bearer token.

        Returns Anonymous for unauthenticated requests. A Principal is
        registered as a user on first sight so it can own records.
        """
        identity = token_service.resolve_identity(request.headers.get("Authorization"))
        if isinstance(identity, Principal):
            await user_repo.ensure(identity.user_id)
            logger.debug("Identity resolved: user_id=%s", identity.user_id)
        return identity
