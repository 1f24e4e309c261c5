"""Service configuration.

Endpoints of the external platforms are read from the environment (a .env
file is loaded by the app entry point). Only the entry points (the API
dependency and the CLI) call from_env; FlowTranslator and DispatchService
fall back to the built-in defaults when no Settings instance is passed.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_RULE_ENGINE_URL = "http://perseo-fe:9090"
DEFAULT_BROKER_URL = "http://orion:1026"
DEFAULT_HISTORY_URL = "http://cygnus:5050"
DEFAULT_HTTP_TIMEOUT = 10.0


@dataclass(frozen=True)
class Settings:
    """Endpoints and client options for the broker, rule engine and history store."""

    rule_engine_url: str = DEFAULT_RULE_ENGINE_URL
    broker_url: str = DEFAULT_BROKER_URL
    history_url: str = DEFAULT_HISTORY_URL
    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            rule_engine_url=os.getenv("RULE_ENGINE_URL", DEFAULT_RULE_ENGINE_URL).rstrip("/"),
            broker_url=os.getenv("BROKER_URL", DEFAULT_BROKER_URL).rstrip("/"),
            history_url=os.getenv("HISTORY_URL", DEFAULT_HISTORY_URL).rstrip("/"),
            http_timeout=float(os.getenv("HTTP_TIMEOUT", str(DEFAULT_HTTP_TIMEOUT))),
        )

    @property
    def rule_notification_url(self) -> str:
        """Where the broker notifies events that feed CEP rules."""
        return f"{self.rule_engine_url}/noticesv2"

    @property
    def history_notification_url(self) -> str:
        return f"{self.history_url}/notify"

    @property
    def rules_url(self) -> str:
        return f"{self.rule_engine_url}/rules"

    @property
    def subscriptions_url(self) -> str:
        return f"{self.broker_url}/v2/subscriptions"
