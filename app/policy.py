from __future__ import annotations

from app.config import PolicyConfig, PolicyDefinition


class PolicyResolver:
    def __init__(self, config: PolicyConfig) -> None:
        self._config = config

    @property
    def config(self) -> PolicyConfig:
        return self._config

    def list_policies(self) -> list[str]:
        return sorted(self._config.policies.keys())

    def resolve_policy(self, policy_name: str | None = None) -> tuple[str, PolicyDefinition]:
        if policy_name is None:
            default_name = self._config.default_policy
            return default_name, self._config.policies[default_name]
        if policy_name not in self._config.policies:
            raise KeyError(f"unknown policy: {policy_name}")
        return policy_name, self._config.policies[policy_name]
