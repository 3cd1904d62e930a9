"""Value objects for the auth domain."""

from archivist.domain.shared.model.value import Identifier


class UserId(Identifier):
    """Unique identifier of an owning identity (a User)."""
