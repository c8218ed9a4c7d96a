"""Admin PIN guard for mutating endpoints."""

import hmac
import logging

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)
security_logger = logging.getLogger("security")

ADMIN_PIN_HEADER = "X-Admin-Pin"


def check_admin_pin(expected_pin: str, provided_pin: str | None) -> bool:
    """Constant-time comparison of the configured and provided PINs."""
    if not provided_pin:
        return False
    return hmac.compare_digest(expected_pin.encode(), provided_pin.encode())


async def require_admin(request: Request) -> None:
    """
    FastAPI dependency rejecting requests without the admin PIN.

    Usage in route:
        @router.post("/tournaments", dependencies=[Depends(require_admin)])
    """
    expected_pin: str = request.app.state.config.admin.pin
    provided_pin = request.headers.get(ADMIN_PIN_HEADER)

    if not check_admin_pin(expected_pin, provided_pin):
        security_logger.warning(
            f"Rejected admin request to {request.url.path} from IP: "
            f"{request.client.host if request.client else 'unknown'}"
        )
        raise HTTPException(status_code=401, detail="Admin PIN required")
