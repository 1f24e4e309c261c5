"""Dispatch service - deploys a translated flow.

This service:
1. POSTs every subscription request to the broker
2. Reads the subscription id from the Location header of each response
3. Feeds the id back through the finalization gate
4. POSTs every rule the gate releases to the rule engine

Data Flow:
    FlowTranslator.translate() -> TranslationResult
    Broker:      POST /v2/subscriptions        -> 201, Location: /v2/subscriptions/<id>
    Gate:        assign_identifier + finalize  -> RuleText | None
    Rule engine: POST /rules                   -> 200/201

Failures are recorded on the DeploymentResult; nothing is retried.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from src.config import Settings
from src.translator.codegen import SubscriptionRequest
from src.translator.errors import TranslationError
from src.translator.gate import assign_identifier, finalize
from src.translator.ir import RuleText
from src.translator.translator import TranslationResult

logger = logging.getLogger(__name__)


def tenant_headers(service: str | None, service_path: str | None = None) -> dict[str, str]:
    """Tenant headers forwarded to the broker and the rule engine."""
    if not service:
        return {}
    return {"Fiware-Service": service, "Fiware-ServicePath": service_path or "/"}


def subscription_id_from(response: httpx.Response) -> str | None:
    """Subscription id: last path segment of the Location header."""
    location = response.headers.get("location", "")
    sub_id = location.rstrip("/").rsplit("/", 1)[-1]
    return sub_id or None


@dataclass
class DeploymentResult:
    """What a deployment created, and what went wrong."""

    flow_id: str
    subscription_ids: list[str] = field(default_factory=list)
    rule_names: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class DispatchService:
    """Sends translation artifacts to the broker and the rule engine."""

    def __init__(self, settings: Settings | None = None, client: httpx.Client | None = None):
        self.settings = settings if settings is not None else Settings()
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.settings.http_timeout)
        return self._client

    def close(self) -> None:
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "DispatchService":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Deploy
    # -------------------------------------------------------------------------

    def deploy(
        self,
        result: TranslationResult,
        headers: dict[str, str] | None = None,
    ) -> DeploymentResult:
        """Create all subscriptions of a translation and the rules they unlock.

        Args:
            result: Output of FlowTranslator.translate
            headers: Tenant headers to forward (see tenant_headers)

        Returns:
            DeploymentResult with created ids/names and per-call errors
        """
        headers = headers or {}
        deployment = DeploymentResult(flow_id=result.flow_id)

        for request in result.subscriptions:
            sub_id = self._create_subscription(request, headers, deployment)
            if sub_id is None:
                continue

            try:
                assign_identifier(request.draft, request.slot, sub_id)
            except TranslationError as e:
                deployment.errors.append(str(e))
                continue

            rule = finalize(request.draft)
            if rule is not None:
                self._create_rule(rule, headers, deployment)

        logger.info(
            f"Flow {result.flow_id}: deployed {len(deployment.subscription_ids)} subscriptions, "
            f"{len(deployment.rule_names)} rules, {len(deployment.errors)} errors"
        )
        return deployment

    def _create_subscription(
        self,
        request: SubscriptionRequest,
        headers: dict[str, str],
        deployment: DeploymentResult,
    ) -> str | None:
        payload = request.subscription.to_payload()
        try:
            response = self.client.post(
                self.settings.subscriptions_url, json=payload, headers=headers
            )
        except httpx.HTTPError as e:
            logger.error(f"Subscription for draft '{request.draft.name}' failed: {e}")
            deployment.errors.append(f"subscription for {request.draft.name}: {e}")
            return None

        if response.status_code != 201:
            logger.error(
                f"Broker rejected subscription for '{request.draft.name}': "
                f"HTTP {response.status_code}: {response.text}"
            )
            deployment.errors.append(
                f"subscription for {request.draft.name}: HTTP {response.status_code}"
            )
            return None

        sub_id = subscription_id_from(response)
        if sub_id is None:
            deployment.errors.append(f"subscription for {request.draft.name}: no Location header")
            return None

        deployment.subscription_ids.append(sub_id)
        return sub_id

    def _create_rule(
        self,
        rule: RuleText,
        headers: dict[str, str],
        deployment: DeploymentResult,
    ) -> None:
        try:
            response = self.client.post(
                self.settings.rules_url, json=rule.to_payload(), headers=headers
            )
        except httpx.HTTPError as e:
            logger.error(f"Rule {rule.name} failed: {e}")
            deployment.errors.append(f"rule {rule.name}: {e}")
            return

        if response.status_code not in (200, 201):
            logger.error(f"Rule engine rejected {rule.name}: HTTP {response.status_code}: {response.text}")
            deployment.errors.append(f"rule {rule.name}: HTTP {response.status_code}")
            return

        deployment.rule_names.append(rule.name)

    # -------------------------------------------------------------------------
    # Remove
    # -------------------------------------------------------------------------

    def remove(
        self,
        deployment: DeploymentResult,
        headers: dict[str, str] | None = None,
    ) -> list[str]:
        """Delete the rules and subscriptions of a previous deployment.

        Returns:
            Error messages, empty when everything was removed
        """
        headers = headers or {}
        errors: list[str] = []
        targets = [f"{self.settings.rules_url}/{name}" for name in deployment.rule_names]
        targets += [f"{self.settings.subscriptions_url}/{sid}" for sid in deployment.subscription_ids]

        for url in targets:
            try:
                response = self.client.delete(url, headers=headers)
            except httpx.HTTPError as e:
                errors.append(f"DELETE {url}: {e}")
                continue
            if response.status_code >= 400 and response.status_code != 404:
                errors.append(f"DELETE {url}: HTTP {response.status_code}")

        for error in errors:
            logger.error(error)
        return errors
