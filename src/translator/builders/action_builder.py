"""Action builder utilities."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from src.translator.compiler.template_resolver import resolve_value
from src.translator.enums import ActionType
from src.translator.errors import TranslationError
from src.translator.flow import EmailNode, HistoryNode, HttpPostNode, UpdateNode
from src.translator.ir import (
    Action,
    EmailAction,
    HistoryAction,
    PostAction,
    RuleAction,
    UpdateAction,
)

if TYPE_CHECKING:
    from src.config import Settings
    from src.translator.draft import Draft
    from src.translator.flow import FlowNode

logger = logging.getLogger(__name__)

URL_PLACEHOLDER = "{{url}}"
METHOD_PLACEHOLDER = "{{method}}"


def _resolve(draft: Draft, value: Any) -> Any:
    """Resolve placeholders in a value and project the variables it uses."""
    resolved, variables = resolve_value(value)
    for name in variables:
        draft.add_variable(name)
    return resolved


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    return json.dumps(value, ensure_ascii=False)


class ActionBuilder:
    """Builds sink actions and the rule engine's view of them."""

    @staticmethod
    def build_action(node: FlowNode, settings: Settings) -> Action:
        """Build the action a sink node asks for.

        Templated fields are kept as internal variable names; they are only
        resolved by build_rule_action.

        Raises:
            TranslationError: If the node is not a sink
        """
        match node:
            case UpdateNode():
                return UpdateAction(
                    notification_endpoint=settings.rule_notification_url,
                    entity_id=node.device_id,
                    entity_type=node.device_type,
                    attributes_var=node.attrs,
                )
            case HttpPostNode():
                return PostAction(
                    notification_endpoint=settings.rule_notification_url,
                    url=node.url or URL_PLACEHOLDER,
                    method=METHOD_PLACEHOLDER if node.method == "use" else node.method,
                    body_var=node.body,
                )
            case EmailNode():
                return EmailAction(
                    notification_endpoint=settings.rule_notification_url,
                    to=node.to,
                    sender=node.sender,
                    subject=node.subject,
                    smtp=node.server,
                    body_var=node.body,
                )
            case HistoryNode():
                return HistoryAction(notification_endpoint=settings.history_notification_url)
            case _:
                raise TranslationError(f"Node '{node.id}' ({node.type}) is not a sink")

    @staticmethod
    def build_rule_action(draft: Draft) -> RuleAction | None:
        """Resolve the draft's action into a rule engine action.

        Every variable referenced by a resolved template is added to the
        draft's variables so the rule projects it.

        Returns:
            RuleAction, or None when the draft has no usable action
            (no action, history forwarding, or a missing internal variable).
        """
        action = draft.action
        match action:
            case UpdateAction():
                return ActionBuilder._build_update(draft, action)
            case PostAction():
                return ActionBuilder._build_post(draft, action)
            case EmailAction():
                return ActionBuilder._build_email(draft, action)
            case _:
                return None

    @staticmethod
    def _build_update(draft: Draft, action: UpdateAction) -> RuleAction | None:
        attributes = draft.get_internal_variable(action.attributes_var)
        if attributes is None:
            logger.warning(
                f"Draft '{draft.name}': no internal variable '{action.attributes_var}' to update"
            )
            return None

        # Template nodes store text, change nodes store objects
        resolved = _resolve(draft, attributes)
        if isinstance(resolved, str):
            try:
                resolved = json.loads(resolved)
            except json.JSONDecodeError:
                logger.warning(f"Draft '{draft.name}': update attributes are not a JSON object")
                return None
        if not isinstance(resolved, dict):
            logger.warning(f"Draft '{draft.name}': update attributes are not a JSON object")
            return None

        return RuleAction(
            type=ActionType.UPDATE,
            parameters={
                "id": action.entity_id,
                "type": action.entity_type,
                "isPattern": False,
                "attributes": [{"name": name, "value": value} for name, value in resolved.items()],
            },
        )

    @staticmethod
    def _build_post(draft: Draft, action: PostAction) -> RuleAction | None:
        body = ActionBuilder._body(draft, action.body_var, "POST")
        if body is None:
            return None

        url = action.url
        if url == URL_PLACEHOLDER:
            url = draft.get_internal_variable("url")
            if url is None:
                logger.warning(f"Draft '{draft.name}': POST url is taken from 'url' but it is unset")
                return None
            url = _as_text(_resolve(draft, url))

        method = action.method
        if method == METHOD_PLACEHOLDER:
            method = draft.get_internal_variable("method")
            if method is None:
                logger.warning(
                    f"Draft '{draft.name}': POST method is taken from 'method' but it is unset"
                )
                return None
            method = _as_text(_resolve(draft, method))

        headers: Any = draft.get_internal_variable("headers")
        if headers is None:
            headers = ""
        else:
            headers = _resolve(draft, headers)
            if isinstance(headers, str):
                try:
                    headers = json.loads(headers)
                except json.JSONDecodeError:
                    logger.debug(f"Draft '{draft.name}': POST headers kept as text")

        return RuleAction(
            type=ActionType.POST,
            template=_as_text(body),
            parameters={"url": url, "method": method, "headers": headers},
        )

    @staticmethod
    def _build_email(draft: Draft, action: EmailAction) -> RuleAction | None:
        body = ActionBuilder._body(draft, action.body_var, "e-mail")
        if body is None:
            return None
        subject = _resolve(draft, action.subject)
        return RuleAction(
            type=ActionType.EMAIL,
            template=_as_text(body),
            parameters={
                "to": action.to,
                "from": action.sender,
                "subject": subject,
                "smtp": action.smtp,
            },
        )

    @staticmethod
    def _body(draft: Draft, body_var: str, sink: str) -> Any:
        """Resolved message body, or None when its internal variable is unset."""
        body = draft.get_internal_variable(body_var)
        if body is None:
            logger.warning(
                f"Draft '{draft.name}': no internal variable '{body_var}' for the {sink} body"
            )
            return None
        return _resolve(draft, body)
