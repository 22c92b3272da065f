# src/rrc_coupons/api/v1/endpoints/coupons.py
"""Coupon issuance endpoint."""

import logging
from typing import Annotated, Final

from fastapi import APIRouter, Cookie, Response, status
from fastapi.responses import JSONResponse

from rrc_coupons.api.v1.dependencies import (
    ClientIpDep,
    ClockDep,
    CooldownGateDep,
    PoolManagerDep,
)
from rrc_coupons.core.settings import settings
from rrc_coupons.schemas.coupon import CouponResponse, MessageResponse
from rrc_coupons.services.cooldown import CooldownActiveError
from rrc_coupons.services.pool import (
    STAGE_CLAIM,
    STAGE_GENERATION,
    STAGE_LOOKUP,
    STAGE_PERSISTENCE,
    STAGE_RETRIEVAL,
    PoolError,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["coupons"])

USER_IP_COOKIE: Final[str] = "userIp"
LAST_REQUEST_COOKIE: Final[str] = "lastRequestTime"

SERVER_ERROR_MESSAGE: Final[str] = "Server error"
STAGE_MESSAGES: Final[dict[str, str]] = {
    STAGE_GENERATION: "Failed to generate new coupons",
    STAGE_PERSISTENCE: "Failed to add new coupon batch",
    STAGE_RETRIEVAL: "Failed to get a new coupon",
    STAGE_CLAIM: "Failed to update coupon database",
    STAGE_LOOKUP: "Failed to read coupon database",
}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"msg": message})


@router.get(
    "/get-coupon",
    response_model=CouponResponse,
    responses={
        429: {"model": MessageResponse, "description": "Client is inside its cooldown window"},
        500: {"model": MessageResponse, "description": "Coupon pool failure"},
    },
)
async def get_coupon(
    response: Response,
    client_ip: ClientIpDep,
    pool: PoolManagerDep,
    gate: CooldownGateDep,
    clock: ClockDep,
    user_ip: Annotated[str | None, Cookie(alias=USER_IP_COOKIE)] = None,
    last_request_time: Annotated[str | None, Cookie(alias=LAST_REQUEST_COOKIE)] = None,
) -> CouponResponse | JSONResponse:
    """Issue one coupon to the caller.

    Steps:
    1. Reject with 429 if the client is still cooling down
    2. Claim a coupon, generating a new batch when the pool is empty
    3. Set the ``userIp`` and ``lastRequestTime`` cookies and return the code

    Cookies are only written on success, so a failed issuance never starts
    the cooldown.
    """
    now = clock()

    try:
        gate.enforce(client_ip, user_ip, last_request_time, now)
    except CooldownActiveError as exc:
        return _error(status.HTTP_429_TOO_MANY_REQUESTS, exc.message)

    try:
        coupon = pool.issue_one()
    except PoolError as exc:
        logger.error("Coupon issuance failed at %s stage: %s", exc.stage, exc)
        message = STAGE_MESSAGES.get(exc.stage, SERVER_ERROR_MESSAGE)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, message)
    except Exception:
        logger.exception("Unexpected error while issuing a coupon")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, SERVER_ERROR_MESSAGE)

    max_age = max(1, gate.window_ms // 1000)
    for name, value in ((USER_IP_COOKIE, client_ip), (LAST_REQUEST_COOKIE, str(now))):
        response.set_cookie(
            name,
            value,
            max_age=max_age,
            httponly=True,
            secure=settings.cookie_secure,
            samesite=settings.cookie_samesite,
        )
    gate.record(client_ip, now)

    return CouponResponse(coupon=coupon)
