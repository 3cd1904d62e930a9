"""User commands: development tokens and owner deletion."""

import asyncio
import sys

from archivist.cli.console import get_console
from archivist.config import Config
from archivist.domain.auth.model.value import UserId
from archivist.domain.auth.service.token import TokenService
from archivist.domain.shared.error import StorageUnavailableError
from archivist.infrastructure.persistence.database import (
    create_db_engine,
    create_session_factory,
)
from archivist.infrastructure.persistence.repository.user import SqlUserRepository


def _parse_user_id(user_id: str) -> UserId:
    try:
        return UserId.parse(user_id)
    except ValueError:
        get_console().error(f"Not a valid user id: {user_id}", hint="User ids are UUIDs")
        sys.exit(1)


def token(user_id: str) -> None:
    """Mint an access token for a user (development only).

    Args:
        user_id: UUID of the user the token authenticates.
    """
    console = get_console()
    config = Config()  # type: ignore[call-arg]
    if not config.auth.jwt.secret:
        console.error("No JWT secret configured", hint="Set ARCHIVIST_AUTH__JWT__SECRET")
        sys.exit(1)

    service = TokenService(config=config.auth.jwt)
    console.print(service.create_access_token(_parse_user_id(user_id)), soft_wrap=True)


async def _delete_user(config: Config, user_id: UserId) -> bool:
    engine = create_db_engine(config.database)
    try:
        async with create_session_factory(engine)() as session:
            deleted = await SqlUserRepository(session).delete(user_id)
            await session.commit()
        return deleted
    finally:
        await engine.dispose()


def delete_user(user_id: str) -> None:
    """Delete a user together with every record they own.

    Args:
        user_id: UUID of the user to delete.
    """
    console = get_console()
    config = Config()  # type: ignore[call-arg]
    uid = _parse_user_id(user_id)
    try:
        deleted = asyncio.run(_delete_user(config, uid))
    except StorageUnavailableError as e:
        console.error(e.message)
        sys.exit(1)

    if not deleted:
        console.warning(f"Unknown user: {uid}")
        sys.exit(1)
    console.success(f"Deleted user {uid} and their records")
