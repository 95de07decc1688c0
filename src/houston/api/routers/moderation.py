"""
Moderation Router
=================

Rule sync, cache status, reporting diagnostics and revocation endpoints.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from starlette.status import HTTP_400_BAD_REQUEST

from houston.api.dependencies import get_runtime, require_api_key
from houston.api.models import RevokeRequest, RuleSyncRequest
from houston.datatypes.rule_datatypes import RuleValidationError, isoformat_utc
from houston.services.admin_actions import AdminActionError, revoke_ban, revoke_timeout
from houston.util.logger import get_logger

logger = get_logger("api")

router = APIRouter(prefix="/moderation", tags=["Moderation"], dependencies=[Depends(require_api_key)])


@router.post("/rules/sync")
async def sync_rules(body: RuleSyncRequest, runtime: Any = Depends(get_runtime)) -> dict:
    """Replace the rule cache with the pushed rule set."""
    if not isinstance(body.rules, list):
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail="Rules must be an array")

    try:
        runtime.rule_cache.load_wire_rules(body.rules)
    except RuleValidationError as exc:
        logger.warning("[API] Rejected rule sync: %s", exc)
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail=str(exc)) from None

    logger.info("[API] Synced %d rules from backend", len(body.rules))
    synced_at = runtime.rule_cache.last_synced_at
    return {
        "success": True,
        "message": f"Successfully synced {len(body.rules)} rules",
        "rulesCount": runtime.rule_cache.size(),
        "syncedAt": isoformat_utc(synced_at) if synced_at else None,
    }


@router.get("/status")
async def cache_status(runtime: Any = Depends(get_runtime)) -> dict:
    """Rule count, last sync time and the cached rules."""
    return {"success": True, **runtime.rule_cache.status()}


@router.get("/debug")
async def debug_info(runtime: Any = Depends(get_runtime)) -> dict:
    """Reporting diagnostics. Never includes the API key itself."""
    return {"success": True, **runtime.reporter.debug_info()}


@router.post("/timeouts/revoke")
async def revoke_member_timeout(body: RevokeRequest, runtime: Any = Depends(get_runtime)) -> dict:
    try:
        result = await revoke_timeout(runtime.bot, body.guild_id, body.user_id, body.reason)
    except AdminActionError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from None
    return result.to_dict()


@router.post("/bans/revoke")
async def revoke_member_ban(body: RevokeRequest, runtime: Any = Depends(get_runtime)) -> dict:
    try:
        result = await revoke_ban(runtime.bot, body.guild_id, body.user_id, body.reason)
    except AdminActionError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from None
    return result.to_dict()
