"""
Request context and authorization capability.

Identity and tenant membership live outside this service. Callers
hand us a RequestContext naming the acting user and the active
tenant, plus an Authorizer that answers "may this actor do this?".
"""

from dataclasses import dataclass
from typing import Protocol

from finance_ledger.errors import (
    AuthorizationError,
    NoActiveTenantError,
    NotAuthenticatedError,
)


@dataclass(frozen=True)
class RequestContext:
    actor_id: str | None
    tenant_id: str | None

    def require(self) -> "RequestContext":
        """Fail before any domain logic if identity or tenant is missing."""
        if not self.actor_id:
            raise NotAuthenticatedError("Not authenticated")
        if not self.tenant_id:
            raise NoActiveTenantError("No active tenant")
        return self


class Authorizer(Protocol):
    def can(self, actor_id: str, action: str, resource: str) -> bool:
        ...


class AllowAllAuthorizer:
    """Default capability: permission gating is delegated upstream."""

    def can(self, actor_id: str, action: str, resource: str) -> bool:
        return True


class StaticAuthorizer:
    """
    Grants a fixed set of actions per actor.

    Useful for tests and for deployments where the permission
    collaborator pushes a flat grant list.
    """

    def __init__(self, grants: dict[str, set[str]]):
        self.grants = grants

    def can(self, actor_id: str, action: str, resource: str) -> bool:
        allowed = self.grants.get(actor_id, set())
        return "*" in allowed or action in allowed


def authorize(
    authorizer: Authorizer,
    context: RequestContext,
    action: str,
    resource: str,
) -> None:
    context.require()
    if not authorizer.can(context.actor_id, action, resource):
        raise AuthorizationError(
            f"Actor {context.actor_id} is not allowed to perform {action}"
        )
