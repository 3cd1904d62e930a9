"""PolicySet: declarative authorization rules and the Relationship enum.

Contains PolicyRule, Relationship, Decision, Transition, the allow() constructor
and the POLICY_SET constant. This is the single source of truth for all
"who can do what on which resource" rules.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from archivist.domain.auth.model.identity import Identity, Principal
from archivist.domain.shared.authorization.action import Action
from archivist.domain.shared.error import AccessDeniedError, ConfigurationError

logger = logging.getLogger(__name__)


class Relationship(StrEnum):
    """Relationships between an identity and a resource."""

    OWNER = "owner"
    PUBLISHED = "published"


class Decision(StrEnum):
    ALLOW = "allow"
    DENY = "deny"


@dataclass(frozen=True)
class Transition:
    """Pre- and post-image of a resource being modified.

    Ownership holds for a transition only if it holds for both images, so an
    update can neither take over a foreign row nor hand one's own row away.
    """

    pre: Any
    post: Any


@dataclass(frozen=True)
class PolicyRule:
    """A single authorization rule in the policy set."""

    action: Action
    relationship: Relationship | None = None
    authenticated: bool = True


def allow(
    action: Action,
    *,
    relationship: Relationship | None = None,
    authenticated: bool = True,
) -> PolicyRule:
    """Convenience constructor for a policy rule."""
    return PolicyRule(action=action, relationship=relationship, authenticated=authenticated)


class PolicySet:
    """Declarative set of all authorization rules.

    Evaluation: rules for the action are OR-ed. Any match allows,
    no match denies. Pure and synchronous.
    """

    def __init__(self, rules: list[PolicyRule]) -> None:
        self._rules = rules
        self._by_action: dict[Action, list[PolicyRule]] = {}
        for rule in rules:
            self._by_action.setdefault(rule.action, []).append(rule)

    def evaluate(self, identity: Identity, action: Action, resource: Any = None) -> Decision:
        for rule in self._by_action.get(action, []):
            if self._matches(rule, identity, resource):
                return Decision.ALLOW
        return Decision.DENY

    def permits(self, identity: Identity, action: Action, resource: Any = None) -> bool:
        return self.evaluate(identity, action, resource) is Decision.ALLOW

    def guard(self, identity: Identity, action: Action, resource: Any = None) -> None:
        """Raise AccessDeniedError if no rule allows this access."""
        identity_id = str(identity.id) if identity.authenticated else "anonymous"

        if self.evaluate(identity, action, resource) is Decision.ALLOW:
            logger.info("Authorization allowed: identity=%s action=%s", identity_id, action)
            return

        logger.warning("Authorization denied: identity=%s action=%s", identity_id, action)
        if not identity.authenticated:
            raise AccessDeniedError("Authentication required", code="missing_token")
        raise AccessDeniedError(f"Access denied: {action}")

    def _matches(self, rule: PolicyRule, identity: Identity, resource: Any) -> bool:
        if rule.authenticated and not isinstance(identity, Principal):
            return False

        match rule.relationship:
            case None:
                return True
            case Relationship.OWNER:
                return isinstance(identity, Principal) and _owns(identity, resource)
            case Relationship.PUBLISHED:
                return _published(resource)

    def validate_coverage(self) -> None:
        """Startup check: every Action enum member must have at least one rule."""
        covered = {r.action for r in self._rules}
        missing = set(Action) - covered
        if missing:
            raise ConfigurationError(f"Actions without policy rules: {sorted(missing)}")


def _owns(principal: Principal, resource: Any) -> bool:
    if isinstance(resource, Transition):
        return _owns(principal, resource.pre) and _owns(principal, resource.post)
    owner_id = getattr(resource, "owner_id", None)
    return owner_id is not None and str(owner_id) == str(principal.user_id)


def _published(resource: Any) -> bool:
    if isinstance(resource, Transition):
        return False
    return getattr(resource, "is_published", False) is True


POLICY_SET = PolicySet(
    [
        # Records (ownership-scoped)
        allow(Action.RECORD_CREATE, relationship=Relationship.OWNER),
        allow(Action.RECORD_READ, relationship=Relationship.OWNER),
        allow(Action.RECORD_UPDATE, relationship=Relationship.OWNER),
        allow(Action.RECORD_DELETE, relationship=Relationship.OWNER),
        # Published records are readable by anyone, including anonymous
        allow(Action.RECORD_READ, relationship=Relationship.PUBLISHED, authenticated=False),
        # Attachments (owner only, no public read)
        allow(Action.ATTACHMENT_CREATE, relationship=Relationship.OWNER),
        allow(Action.ATTACHMENT_READ, relationship=Relationship.OWNER),
        allow(Action.ATTACHMENT_UPDATE, relationship=Relationship.OWNER),
        allow(Action.ATTACHMENT_DELETE, relationship=Relationship.OWNER),
    ]
)
