"""Provider templates and the offline base configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

CONFIG_SCHEMA_URL = "https://charm.land/crush.json"
DEFAULT_CONTEXT_WINDOW = 128000
DEFAULT_MAX_TOKENS = 4096

OFFLINE_ENV_DEFAULTS: tuple[tuple[str, str], ...] = (
    ("CRUSH_DISABLE_METRICS", "1"),
    ("CRUSH_DISABLE_PROVIDER_AUTO_UPDATE", "1"),
    ("DO_NOT_TRACK", "1"),
)


def offline_base_config() -> dict[str, Any]:
    return {
        "$schema": CONFIG_SCHEMA_URL,
        "options": {
            "disable_provider_auto_update": True,
            "disable_metrics": True,
            "disable_default_providers": True,
            "auto_lsp": True,
        },
    }


@dataclass(frozen=True)
class ProviderTemplate:
    """How to render one provider entry of the configuration file."""

    key: str
    name: str
    provider_type: str
    env_vars: tuple[str, ...]
    api_key_env: str | None
    default_deployment: str
    default_model_name: str
    default_endpoint: str | None = None
    supports_attachments: bool = True
    display_name: str | None = None

    def render(
        self,
        endpoint: str | None,
        *,
        deployment: str | None = None,
        model_name: str | None = None,
        context_window: int | None = None,
        max_tokens: int | None = None,
    ) -> dict[str, Any]:
        provider: dict[str, Any] = {}
        if self.display_name:
            provider["name"] = self.display_name
        provider["type"] = self.provider_type
        provider["base_url"] = normalize_endpoint(self, endpoint)
        if self.api_key_env:
            provider["api_key"] = f"${self.api_key_env}"
        provider["models"] = [
            {
                "id": deployment or self.default_deployment,
                "name": model_name or self.default_model_name,
                "context_window": context_window or DEFAULT_CONTEXT_WINDOW,
                "default_max_tokens": max_tokens or DEFAULT_MAX_TOKENS,
                "cost_per_1m_in": 0,
                "cost_per_1m_out": 0,
                "cost_per_1m_in_cached": 0,
                "cost_per_1m_out_cached": 0,
                "can_reason": False,
                "supports_attachments": self.supports_attachments,
                "options": {},
            }
        ]
        return provider


def normalize_endpoint(template: ProviderTemplate, endpoint: str | None) -> str:
    """Fall back to the template default and make remote endpoints end in ``/``."""

    value = (endpoint or "").strip() or (template.default_endpoint or "")
    if template.default_endpoint is None and value and not value.endswith("/"):
        value += "/"
    return value


PROVIDER_TEMPLATES: dict[str, ProviderTemplate] = {
    "azure-openai": ProviderTemplate(
        key="azure-openai",
        name="Azure OpenAI",
        provider_type="azure",
        env_vars=("AZURE_OPENAI_API_ENDPOINT", "AZURE_OPENAI_API_KEY", "AZURE_OPENAI_API_VERSION"),
        api_key_env="AZURE_OPENAI_API_KEY",
        default_deployment="gpt-4",
        default_model_name="GPT-4 (Azure)",
    ),
    "azure-foundry": ProviderTemplate(
        key="azure-foundry",
        name="Azure AI Foundry",
        provider_type="openai-compat",
        env_vars=("AZURE_AI_FOUNDRY_ENDPOINT", "AZURE_AI_FOUNDRY_API_KEY"),
        api_key_env="AZURE_AI_FOUNDRY_API_KEY",
        default_deployment="gpt-4",
        default_model_name="GPT-4 (Azure AI Foundry)",
    ),
    "openai-compat": ProviderTemplate(
        key="openai-compat",
        name="OpenAI-Compatible API",
        provider_type="openai-compat",
        env_vars=("CUSTOM_LLM_API_KEY",),
        api_key_env="CUSTOM_LLM_API_KEY",
        default_deployment="default",
        default_model_name="Custom Model",
    ),
    "ollama": ProviderTemplate(
        key="ollama",
        name="Ollama (Local)",
        provider_type="openai-compat",
        env_vars=(),
        api_key_env=None,
        default_deployment="llama3:70b",
        default_model_name="Llama 3 70B",
        default_endpoint="http://localhost:11434/v1/",
        supports_attachments=False,
        display_name="Ollama",
    ),
}


def get_template(key: str) -> ProviderTemplate | None:
    return PROVIDER_TEMPLATES.get(key.strip().lower())


__all__ = [
    "CONFIG_SCHEMA_URL",
    "OFFLINE_ENV_DEFAULTS",
    "PROVIDER_TEMPLATES",
    "ProviderTemplate",
    "get_template",
    "normalize_endpoint",
    "offline_base_config",
]
