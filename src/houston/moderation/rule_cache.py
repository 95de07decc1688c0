"""In-memory cache of the active moderation rules.

The backend is the source of truth for rules. It either pushes the full rule
set through the sync endpoint or the bot pulls it on startup. Both paths end
in :meth:`RuleCache.load_rules`, which rebuilds the whole snapshot and then
publishes it in a single assignment so readers never see a half-updated set.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from houston.datatypes.rule_datatypes import ModerationRule, RuleValidationError, isoformat_utc
from houston.services.backend_client import BackendClient, BackendError
from houston.util.logger import get_logger

logger = get_logger("rule_cache")


def _priority_key(rule: ModerationRule) -> Tuple[int, str]:
    return (-rule.priority, rule.name)


class RuleCache:
    """
    Prioritized snapshot of the enabled moderation rules.

    Only enabled rules are retained. Iteration order is priority descending,
    ties broken by name ascending (case-sensitive). Every load fully replaces
    the previous snapshot.

    Args:
        backend (BackendClient | None): Client used by :meth:`fetch_and_load`.
    """

    def __init__(self, backend: BackendClient | None = None) -> None:
        self._backend = backend
        self._rules: Mapping[str, ModerationRule] = MappingProxyType({})
        self._ordered: Tuple[ModerationRule, ...] = ()
        self._last_synced_at: datetime | None = None

    # --------------------------
    # Loading
    # --------------------------
    def load_rules(self, rules: Iterable[ModerationRule]) -> int:
        """
        Replace the cache content with ``rules``.

        Args:
            rules (Iterable[ModerationRule]): The complete new rule set.

        Returns:
            int: Number of enabled rules now cached.
        """
        ordered = tuple(sorted((rule for rule in rules if rule.enabled), key=_priority_key))
        by_id: Dict[str, ModerationRule] = {}
        for rule in ordered:
            if rule.id in by_id:
                logger.warning("[RULE CACHE] Duplicate rule id %s; keeping the higher priority entry", rule.id)
                continue
            by_id[rule.id] = rule

        self._ordered = tuple(by_id.values())
        self._rules = MappingProxyType(by_id)
        self._last_synced_at = datetime.now(timezone.utc)

        logger.info("[RULE CACHE] Loaded %d active rules", len(self._ordered))
        return len(self._ordered)

    def load_wire_rules(self, payload: Iterable[Mapping[str, Any]]) -> int:
        """
        Validate backend rule objects and load them.

        Every rule is parsed before the cache is touched, so a malformed
        entry leaves the previous snapshot in place.

        Raises:
            RuleValidationError: If any rule object is malformed.
        """
        parsed = [ModerationRule.from_wire(item) for item in payload]
        return self.load_rules(parsed)

    async def fetch_and_load(self, max_retries: int = 3, delay_seconds: float = 2.0, timeout_seconds: float = 5.0) -> bool:
        """
        Pull the enabled rules from the backend and load them, retrying on failure.

        Attempts are separated by a fixed ``delay_seconds``. When every attempt
        fails the cache keeps whatever it held before; on a cold start that
        means moderation stays inactive until the backend pushes a sync.

        Args:
            max_retries (int): Total number of attempts.
            delay_seconds (float): Pause between attempts.
            timeout_seconds (float): Request timeout per attempt.

        Returns:
            bool: True if rules were loaded, False otherwise.
        """
        if self._backend is None or not self._backend.is_configured:
            logger.error("[RULE CACHE] INTERNAL_API_KEY not configured, cannot fetch rules")
            return False

        attempts = max(1, max_retries)
        for attempt in range(1, attempts + 1):
            try:
                logger.info("[RULE CACHE] Fetching rules from backend (attempt %d/%d)...", attempt, attempts)
                rules = await self._backend.fetch_rules(timeout_seconds=timeout_seconds)
                count = self.load_wire_rules(rules)
                logger.info("[RULE CACHE] Successfully fetched and loaded %d rules", count)
                return True
            except RuleValidationError as exc:
                logger.error("[RULE CACHE] Backend returned malformed rules: %s", exc)
                break
            except BackendError as exc:
                logger.error("[RULE CACHE] Attempt %d/%d failed: %s", attempt, attempts, exc.to_log_dict())

            if attempt < attempts:
                logger.info("[RULE CACHE] Retrying in %.1fs...", delay_seconds)
                await asyncio.sleep(delay_seconds)

        logger.error("[RULE CACHE] Failed to fetch rules after all retries")
        logger.warning("[RULE CACHE] Auto-moderation will NOT work until rules are synced manually")
        return False

    # --------------------------
    # Reads
    # --------------------------
    def get_all_rules(self) -> Tuple[ModerationRule, ...]:
        """Return the active rules in evaluation order."""
        return self._ordered

    def get_rules_by_trigger_type(self, trigger_type: str) -> List[ModerationRule]:
        return [rule for rule in self._ordered if rule.trigger_type == str(trigger_type)]

    def get_rule_by_id(self, rule_id: str) -> ModerationRule | None:
        return self._rules.get(rule_id)

    def size(self) -> int:
        return len(self._ordered)

    @property
    def last_synced_at(self) -> datetime | None:
        return self._last_synced_at

    def status(self) -> Dict[str, Any]:
        """Return the rule count, last sync time and a minimal per-rule listing."""
        return {
            "rulesCount": len(self._ordered),
            "lastSyncedAt": isoformat_utc(self._last_synced_at) if self._last_synced_at else None,
            "rules": [rule.to_summary() for rule in self._ordered],
        }

    def clear(self) -> None:
        """Empty the cache and forget the last sync time."""
        self._ordered = ()
        self._rules = MappingProxyType({})
        self._last_synced_at = None
        logger.info("[RULE CACHE] Cache cleared")
