"""Flow API request and response models.

These models define the interface between the flow editor and this
service. The editor sends FlowRequest; the service answers with either a
TranslationResponse (dry run) or a DeploymentResponse.
"""

from typing import Any

from pydantic import BaseModel, Field

from src.service.dispatch_service import DeploymentResult
from src.translator.draft import Draft
from src.translator.translator import TranslationResult


class FlowRequest(BaseModel):
    """A flow exported by the editor."""

    id: str = Field(..., min_length=1, description="Flow identifier, used to name rules")
    flow: list[dict[str, Any]] = Field(
        default_factory=list, description="Ordered node descriptors"
    )


class DraftSummary(BaseModel):
    """What a draft will become once its subscriptions exist."""

    name: str
    correlated: bool
    device_id: str
    device_type: str
    action: str | None = None
    variables: list[str] = Field(default_factory=list)

    @classmethod
    def from_draft(cls, draft: Draft) -> "DraftSummary":
        return cls(
            name=draft.name,
            correlated=draft.is_correlated,
            device_id=draft.input_device.id,
            device_type=draft.input_device.type,
            action=draft.action.type.value if draft.action is not None else None,
            variables=list(draft.variables),
        )


class SubscriptionSummary(BaseModel):
    """A subscription request tagged with its draft and pattern slot."""

    rule: str
    slot: str
    payload: dict[str, Any]


class TranslationResponse(BaseModel):
    """Result of a dry-run translation."""

    flow_id: str
    drafts: list[DraftSummary] = Field(default_factory=list)
    subscriptions: list[SubscriptionSummary] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: TranslationResult) -> "TranslationResponse":
        return cls(
            flow_id=result.flow_id,
            drafts=[DraftSummary.from_draft(d) for d in result.drafts],
            subscriptions=[
                SubscriptionSummary(
                    rule=request.draft.name,
                    slot=request.slot.name.lower(),
                    payload=request.subscription.to_payload(),
                )
                for request in result.subscriptions
            ],
        )


class DeploymentResponse(BaseModel):
    """Result of deploying a flow to the broker and the rule engine."""

    flow_id: str
    ok: bool
    subscription_ids: list[str] = Field(default_factory=list)
    rule_names: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: DeploymentResult) -> "DeploymentResponse":
        return cls(
            flow_id=result.flow_id,
            ok=result.ok,
            subscription_ids=list(result.subscription_ids),
            rule_names=list(result.rule_names),
            errors=list(result.errors),
        )
