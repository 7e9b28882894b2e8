"""FastAPI dependency implementations."""

from __future__ import annotations

from collections.abc import Callable, Iterator

from fastapi import Depends, HTTPException, Request
from sqlmodel import Session

from src.authgate.api.http.app_data import ApplicationDependencies
from src.authgate.core.models import VerifiedToken
from src.authgate.core.services import AuthenticationOrchestrator, RoleVocabulary


def get_app_dependencies(request: Request) -> ApplicationDependencies:
    return request.app.state.app_dependencies


def get_db_session(request: Request) -> Iterator[Session]:
    """Yield a database session that is closed once the request finishes."""
    app_deps = get_app_dependencies(request)
    db = app_deps.database_service.get_session()
    try:
        yield db
    finally:
        db.close()


def get_orchestrator(
    request: Request, db: Session = Depends(get_db_session)
) -> AuthenticationOrchestrator:
    """Get an orchestrator bound to this request's database session."""
    app_deps = get_app_dependencies(request)
    return AuthenticationOrchestrator(db, app_deps.components)


def get_bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=401,
            detail="Missing Bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return auth_header.split(" ", 1)[1].strip()


def get_verified_token(
    request: Request,
    token: str = Depends(get_bearer_token),
    orchestrator: AuthenticationOrchestrator = Depends(get_orchestrator),
) -> VerifiedToken:
    """Authenticate the request using its Bearer token.

    A rejected token raises ``TokenError``, which the application turns
    into a 401 response.
    """
    verified = orchestrator.verify_token(token)
    request.state.username = verified.subject
    request.state.roles = sorted(verified.roles)
    return verified


def require_role(*names: str) -> Callable[..., VerifiedToken]:
    """Build a dependency admitting only tokens that carry one of ``names``.

    Usage: ``Depends(require_role("ADMIN"))``. A missing or rejected token
    still yields 401; a valid token without the role yields 403.
    """
    allowed = {RoleVocabulary.normalise(name) for name in names}

    def dependency(verified: VerifiedToken = Depends(get_verified_token)) -> VerifiedToken:
        held = {RoleVocabulary.normalise(role) for role in verified.roles}
        if not held & allowed:
            raise HTTPException(status_code=403, detail="Insufficient role")
        return verified

    return dependency
