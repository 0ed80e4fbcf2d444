import secrets
from collections.abc import Callable
from enum import Enum
from threading import Lock
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from queuedesk.dispatch.models import StaffMember
from queuedesk.dispatch.state import StaffKind


class Role(str, Enum):
    """Supported roles."""

    ADMIN = "admin"
    EMPLOYEE = "employee"
    CLIENT = "client"


ROLES_BY_KIND: dict[StaffKind, tuple[Role, ...]] = {
    StaffKind.ADMINISTRATOR: (Role.ADMIN, Role.CLIENT),
    StaffKind.EMPLOYEE: (Role.EMPLOYEE, Role.CLIENT),
}


class User:
    """Caller identity; anonymous callers are walk-in clients."""

    def __init__(self, username: str, roles: tuple[Role, ...], *, staff_id: str | None = None):
        self.username = username
        self.roles = roles
        self.staff_id = staff_id

    def has_role(self, role: Role) -> bool:
        return role in self.roles

    def can_act_for(self, employee_id: str) -> bool:
        return self.has_role(Role.ADMIN) or (self.has_role(Role.EMPLOYEE) and self.staff_id == employee_id)


ANONYMOUS = User(username="anonymous", roles=(Role.CLIENT,))


class TokenRegistry:
    """Bearer tokens issued at login, kept in process memory."""

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._lock = Lock()

    def issue(self, member: StaffMember) -> str:
        token = secrets.token_urlsafe(32)
        user = User(username=member.name, roles=ROLES_BY_KIND[member.kind], staff_id=member.id)
        with self._lock:
            self._users[token] = user
        return token

    def resolve(self, token: str) -> User | None:
        with self._lock:
            return self._users.get(token)

    def revoke(self, token: str) -> bool:
        with self._lock:
            return self._users.pop(token, None) is not None

    def revoke_staff(self, staff_id: str) -> int:
        with self._lock:
            tokens = [token for token, user in self._users.items() if user.staff_id == staff_id]
            for token in tokens:
                del self._users[token]
        return len(tokens)


bearer_scheme = HTTPBearer(auto_error=False)


def get_token_registry(request: Request) -> TokenRegistry:
    registry = getattr(request.app.state, "token_registry", None)
    if registry is None:
        registry = TokenRegistry()
        request.app.state.token_registry = registry
    return registry


def resolve_user_from_token(token: str | None, registry: TokenRegistry) -> User:
    """Return the user behind a bearer token; no token means an anonymous client."""

    if token is None:
        return ANONYMOUS

    user = registry.resolve(token)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid authentication credentials")
    return user


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
    request: Request,
) -> User:
    cached = getattr(request.state, "user", None)
    if isinstance(cached, User):
        return cached

    token = credentials.credentials if credentials is not None else None
    user = resolve_user_from_token(token, get_token_registry(request))
    request.state.user = user
    return user


def role_required(role: Role) -> Callable[[User], User]:
    """Dependency factory ensuring the current user has the requested role."""

    async def dependency(user: Annotated[User, Depends(get_current_user)]) -> User:
        if not user.has_role(role):
            status_code = 401 if user is ANONYMOUS else 403
            raise HTTPException(status_code=status_code, detail="Insufficient permissions")
        return user

    return dependency


def ensure_can_act_for(user: User, employee_id: str) -> None:
    if user is ANONYMOUS:
        raise HTTPException(status_code=401, detail="Authentication required")
    if not user.can_act_for(employee_id):
        raise HTTPException(status_code=403, detail="Insufficient permissions")


CurrentUser = Annotated[User, Depends(get_current_user)]
AdminUser = Annotated[User, Depends(role_required(Role.ADMIN))]
