"""
Rule engine for Houston.

- **rule_cache.py**: Prioritized snapshot of the enabled rules, loaded by
  backend push or pull.
- **spam_tracker.py**: Per-user sliding window of recent messages.
- **triggers.py**: Trigger predicates, exemptions and the trigger evaluator.
- **action_executor.py**: Safety ordering and sequential execution of rule actions.
- **moderation_service.py**: The per-message pipeline tying the pieces together.
"""
