"""Identity hierarchy: the caller context attached to every operation."""

from dataclasses import dataclass

from archivist.domain.auth.model.value import UserId


@dataclass(frozen=True)
class Identity:
    """Base for all request identities."""

    @property
    def authenticated(self) -> bool:
        return False

    @property
    def id(self) -> UserId | None:
        return None


@dataclass(frozen=True)
class Anonymous(Identity):
    """Unauthenticated request."""

    pass


@dataclass(frozen=True)
class System(Identity):
    """Internal background process. Bypasses resource checks."""

    pass


@dataclass(frozen=True)
class Principal(Identity):
    """The authenticated identity of the current requester.

    Resolved per-request from the bearer token. Immutable after creation.
    """

    user_id: UserId

    @property
    def authenticated(self) -> bool:
        return True

    @property
    def id(self) -> UserId:
        return self.user_id
