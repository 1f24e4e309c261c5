"""Two-phase finalization gate.

A rule can only be created once the broker subscriptions it listens to
exist. Fixed drafts wait for one identifier; correlated drafts wait for
both the first and the second one:

    PENDING -> (PARTIAL) -> READY -> EMITTED

The dispatch layer calls assign_identifier for every identifier the broker
reports and then finalize; a returned rule is sent to the rule engine,
None means there is nothing to send yet.
"""

from __future__ import annotations

import logging

from .codegen import build_rule
from .draft import CorrelatedPattern, Draft, FixedPattern
from .enums import DraftState, PatternSlot
from .errors import TranslationError
from .ir import RuleText

logger = logging.getLogger(__name__)


def assign_identifier(draft: Draft, slot: PatternSlot, subscription_id: str) -> DraftState:
    """Record a broker subscription id on a draft.

    Returns:
        The draft's state after the assignment.

    Raises:
        TranslationError: If the slot does not match the draft's pattern
    """
    subscription_id = str(subscription_id)
    if not subscription_id:
        raise TranslationError(f"Draft '{draft.name}': empty subscription id")

    if slot == PatternSlot.FIXED:
        if isinstance(draft.pattern, CorrelatedPattern):
            raise TranslationError(f"Draft '{draft.name}' is correlated, got a fixed subscription id")
        if draft.pattern is None:
            draft.pattern = FixedPattern()
        draft.pattern.subscription_id = subscription_id
    else:
        if not isinstance(draft.pattern, CorrelatedPattern):
            raise TranslationError(
                f"Draft '{draft.name}' is not correlated, got a {slot.name.lower()} subscription id"
            )
        if slot == PatternSlot.FIRST:
            draft.pattern.first_subscription_id = subscription_id
        else:
            draft.pattern.second_subscription_id = subscription_id

    logger.debug(f"Draft '{draft.name}': {slot.name.lower()} subscription {subscription_id}")
    return draft.state


def finalize(draft: Draft) -> RuleText | None:
    """Emit the draft's rule if every identifier it needs is known.

    Returns None while the draft is not READY, once it has been EMITTED,
    and for drafts without a rule action.
    """
    if draft.state != DraftState.READY:
        return None

    rule = build_rule(draft)
    if rule is None:
        logger.info(f"Draft '{draft.name}': no rule to emit")
        return None

    draft.emitted = True
    logger.info(f"Draft '{draft.name}': rule ready")
    return rule
