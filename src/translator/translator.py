"""Flow translator.

Translation Flow:
    node descriptors -> FlowGraph -> DraftExtractor -> Drafts -> SubscriptionRequests

For each source node, in descriptor order:
1. Walk the graph from the source, collecting one Draft per path to a sink
2. Name each draft from the flow id and a per-flow sequence number
3. Derive the broker subscriptions every draft needs

Rules are generated later, through the finalization gate, once the broker
has assigned identifiers to those subscriptions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from src.config import Settings

from .codegen import SubscriptionRequest, to_subscriptions
from .draft import Draft
from .flow import FlowGraph
from .visitors import DraftExtractor

logger = logging.getLogger(__name__)


def rule_name(flow_id: str, sequence: int) -> str:
    """Rule name for the n-th (1-based) draft of a flow."""
    return f"rule_{flow_id.replace('.', '_')}_{sequence}"


@dataclass
class TranslationResult:
    """Everything a flow translates to, before any external call."""

    flow_id: str
    service: str | None = None
    drafts: list[Draft] = field(default_factory=list)
    subscriptions: list[SubscriptionRequest] = field(default_factory=list)


class FlowTranslator:
    """Translates a flow graph to subscription requests and rule drafts.

    Example:
        translator = FlowTranslator(settings)
        result = translator.translate(descriptors, flow_id="6a666fff.bfb128")
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings if settings is not None else Settings()

    def translate(
        self,
        descriptors: list[dict[str, Any]],
        flow_id: str,
        service: str | None = None,
    ) -> TranslationResult:
        """Translate a flow.

        Args:
            descriptors: Ordered node descriptors exported by the flow editor
            flow_id: Flow identifier, used to name rules
            service: Tenant qualifier, passed through untouched

        Returns:
            TranslationResult with the drafts and their subscription requests

        Raises:
            TranslationError: If the flow graph is structurally broken
        """
        logger.info(f"Translating flow {flow_id} ({len(descriptors)} nodes)")
        graph = FlowGraph.from_descriptors(descriptors)
        extractor = DraftExtractor(graph, self.settings)

        drafts: list[Draft] = []
        for source in graph.sources():
            drafts.extend(extractor.extract(source))

        for sequence, draft in enumerate(drafts, start=1):
            draft.name = rule_name(flow_id, sequence)

        subscriptions = to_subscriptions(drafts)
        logger.info(
            f"Flow {flow_id}: {len(drafts)} drafts, {len(subscriptions)} subscriptions"
        )
        return TranslationResult(
            flow_id=flow_id,
            service=service,
            drafts=drafts,
            subscriptions=subscriptions,
        )


def translate_flow(
    descriptors: list[dict[str, Any]],
    flow_id: str,
    service: str | None = None,
    settings: Settings | None = None,
) -> TranslationResult:
    """Convenience wrapper around FlowTranslator.translate."""
    return FlowTranslator(settings).translate(descriptors, flow_id, service)
