"""Flow to rule translator.

Converts flow-editor graphs into broker subscriptions and CEP rules.

The translation pipeline:
  1. Node descriptors (JSON from the editor) -> FlowGraph
  2. FlowGraph -> DraftExtractor -> Drafts (one per path to a sink)
  3. Drafts -> SubscriptionRequests, sent to the broker by the dispatch layer
  4. Broker ids -> assign_identifier + finalize -> RuleText, sent to the rule engine
"""

from .codegen import SubscriptionRequest, build_rule, to_subscriptions
from .draft import Draft
from .errors import CyclicGraphError, DanglingWireError, InvalidFlowError, TranslationError
from .flow import FlowGraph
from .gate import assign_identifier, finalize
from .ir import RuleText, Subscription
from .translator import FlowTranslator, TranslationResult, translate_flow
from .visitors import extract_drafts

__all__ = [
    "CyclicGraphError",
    "DanglingWireError",
    "Draft",
    "FlowGraph",
    "FlowTranslator",
    "InvalidFlowError",
    "RuleText",
    "Subscription",
    "SubscriptionRequest",
    "TranslationError",
    "TranslationResult",
    "assign_identifier",
    "build_rule",
    "extract_drafts",
    "finalize",
    "to_subscriptions",
    "translate_flow",
]
