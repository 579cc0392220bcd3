import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from .realtime.hub import RealtimeHub, get_realtime_hub


def verify_internal_secret(
    x_internal_secret: Optional[str] = Header(None),
    hub: RealtimeHub = Depends(get_realtime_hub),
) -> str:
    """
    Dependency that ensures requests include the expected internal secret.
    """
    expected = hub.settings.INTERNAL_SHARED_SECRET
    if not expected:
        # fail fast and log configuration problem
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server misconfiguration: INTERNAL_SHARED_SECRET not set"
        )
    if not x_internal_secret or not secrets.compare_digest(
        x_internal_secret.encode(), expected.encode()
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized: Invalid or missing X-Internal-Secret header"
        )
    return x_internal_secret
