# meeting_metrics/api/dependencies/internal_auth.py
import logging
import secrets
from typing import Optional

from fastapi import Header, HTTPException, Request, status

from meeting_metrics.core.config import get_settings

logger = logging.getLogger(__name__)

OPEN_ENVIRONMENTS = ("local", "test")


def _key_matches(provided: Optional[str], expected: str) -> bool:
    if not provided:
        return False
    return secrets.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def _reject(request: Request, env: str) -> HTTPException:
    logger.warning(
        "Rejected internal call %s %s (env=%s): invalid or missing API key",
        request.method,
        request.url.path,
        env,
    )
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or missing internal API key.",
    )


async def verify_internal_api_key(
    request: Request,
    internal_api_key: Optional[str] = Header(
        default=None,
        alias="X-Internal-Api-Key",
        description=(
            "Internal API key required for the /internal maintenance jobs "
            "(bulk recompute, distinction awarding, attendee rebuild) in "
            "non-local environments."
        ),
    ),
) -> None:
    """
    Dependency guarding the /internal maintenance jobs.

    These endpoints rewrite every member's performance record, move the
    member of the month/week flags and rebuild attendee lists, so they are
    meant for schedulers and operators only.

    Rules
    -----
    - APP_ENV in ("local", "test"):
        - If INTERNAL_API_KEY is not set -> no auth enforced (convenient for local dev).
        - If INTERNAL_API_KEY is set      -> header must match the configured key.
    - APP_ENV not in ("local", "test")  [e.g. dev/stage/prod]:
        - INTERNAL_API_KEY must be set, otherwise 500 (misconfiguration).
        - Header must be present and match INTERNAL_API_KEY, otherwise 401.

    Keys are compared in constant time.
    """
    settings = get_settings()
    env = (settings.APP_ENV or "local").lower()
    expected = getattr(settings, "INTERNAL_API_KEY", None)

    # Local / test: optional, but enforce if key is configured
    if env in OPEN_ENVIRONMENTS:
        if not expected:
            # No key configured => maintenance jobs open in local/test
            return

        # Key configured => enforce it
        if not _key_matches(internal_api_key, expected):
            raise _reject(request, env)
        return

    # Non-local (dev / stage / prod): key must exist and must match
    if not expected:
        # Misconfigured environment: fail fast instead of silently exposing the jobs
        logger.error("INTERNAL_API_KEY is not configured for APP_ENV=%s", env)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="INTERNAL_API_KEY not configured for this environment.",
        )

    if not _key_matches(internal_api_key, expected):
        raise _reject(request, env)
