"""Repository method decorators for resource-level authorization.

@reads(action): After method returns, guard the result (skip if None).
@writes(action): Before method runs, guard the first resource arg.

Both decorators access self._identity and self._policy_set on the repo
instance. The System identity bypasses both: it marks the privileged write
path used by background schedules.
"""

from collections.abc import Callable
from functools import wraps
from typing import Any

from archivist.domain.auth.model.identity import System
from archivist.domain.shared.authorization.action import Action


def reads(action: Action) -> Callable:
    """After method returns, guard the result against the policy set.

    If the result is None (not found), the check is skipped.
    """

    def decorator(fn: Callable) -> Callable:
        @wraps(fn)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
            result = await fn(self, *args, **kwargs)
            if result is not None and not isinstance(self._identity, System):
                self._policy_set.guard(self._identity, action, result)
            return result

        return wrapper

    return decorator


def writes(action: Action) -> Callable:
    """Before method runs, guard the first resource arg."""

    def decorator(fn: Callable) -> Callable:
        @wraps(fn)
        async def wrapper(self: Any, resource: Any, *args: Any, **kwargs: Any) -> Any:
            if not isinstance(self._identity, System):
                self._policy_set.guard(self._identity, action, resource)
            return await fn(self, resource, *args, **kwargs)

        return wrapper

    return decorator
