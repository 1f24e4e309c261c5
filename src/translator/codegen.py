"""Code generation: drafts to broker subscriptions and CEP rules.

Subscription generation happens right after traversal. Rule generation has
to wait until the broker has assigned identifiers to the subscriptions a
rule listens to (see gate.py).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .builders import ActionBuilder
from .draft import CorrelatedPattern, Draft
from .enums import PatternSlot
from .ir import Condition, RuleText, Subscription

logger = logging.getLogger(__name__)

SUBSCRIPTION_ID_TEST = 'iotEvent(cast(subscriptionId?, String) = "{sub_id}")'


@dataclass
class SubscriptionRequest:
    """A subscription to create, with a handle back to its draft.

    Once the broker reports the subscription's id, the dispatch layer calls
    assign_identifier(request.draft, request.slot, id) and then finalize.
    """

    subscription: Subscription
    slot: PatternSlot
    draft: Draft


def merge_expressions(conditions: list[Condition]) -> dict[str, str]:
    """Merge condition expressions; repeated keys are joined with '; '."""
    expression: dict[str, str] = {}
    for condition in conditions:
        for key, value in condition.to_expression().items():
            if key in expression:
                expression[key] += "; " + value
            else:
                expression[key] = value
    return expression


def _subscription(draft: Draft, conditions: list[Condition], slot: PatternSlot) -> Subscription:
    notify_url = draft.action.notification_endpoint if draft.action is not None else ""
    return Subscription(
        description=f"Subscription for {draft.input_device.id}",
        entity_type=draft.input_device.type,
        entity_id=draft.input_device.id,
        attributes=list(draft.input_device.attributes) if conditions else [],
        condition_expression=merge_expressions(conditions) if conditions else None,
        notify_url=notify_url,
        slot=slot,
    )


def to_subscriptions(drafts: list[Draft]) -> list[SubscriptionRequest]:
    """One subscription per fixed draft, a first/second pair per correlated draft."""
    requests: list[SubscriptionRequest] = []
    for draft in drafts:
        if isinstance(draft.pattern, CorrelatedPattern):
            for slot, conditions in (
                (PatternSlot.FIRST, draft.pattern.first_conditions),
                (PatternSlot.SECOND, draft.pattern.second_conditions),
            ):
                requests.append(
                    SubscriptionRequest(_subscription(draft, conditions, slot), slot, draft)
                )
        else:
            requests.append(
                SubscriptionRequest(
                    _subscription(draft, draft.fixed_conditions, PatternSlot.FIXED),
                    PatternSlot.FIXED,
                    draft,
                )
            )
    return requests


def render_pattern_text(draft: Draft) -> str:
    """Render the EPL statement for a draft whose identifiers are all known.

    Correlated rules project from the second event, which is the one that
    completes the pattern.
    """
    event = "ev2" if draft.is_correlated else "ev"
    projection = [f'"{draft.name}" as ruleName']
    projection += [f"{event}.{name}? as {name}" for name in draft.variables]

    pattern = draft.pattern
    if isinstance(pattern, CorrelatedPattern):
        events = (
            "every ev = "
            + SUBSCRIPTION_ID_TEST.format(sub_id=pattern.first_subscription_id)
            + " -> ev2 = "
            + SUBSCRIPTION_ID_TEST.format(sub_id=pattern.second_subscription_id)
        )
    else:
        sub_id = pattern.subscription_id if pattern is not None else ""
        events = "every ev = " + SUBSCRIPTION_ID_TEST.format(sub_id=sub_id)

    return f"select *, {', '.join(projection)} from pattern [{events}]"


def build_rule(draft: Draft) -> RuleText | None:
    """Generate the rule for a draft.

    Resolves the action's templates first, since they can add variables to
    the projection.

    Returns:
        RuleText, or None when the draft has no usable rule action.
    """
    action = ActionBuilder.build_rule_action(draft)
    if action is None:
        return None
    return RuleText(name=draft.name, pattern_text=render_pattern_text(draft), action=action)
