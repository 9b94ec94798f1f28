# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Scenario Engine Configuration - Single source of truth.
YAML is king. Env vars ONLY for secrets (and the log level).

- ALL configuration in plain text (YAML)
- NO hidden state - everything inspectable via `cat`, `grep`
"""

import os
import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


DEFAULT_CONFIG_PATH = "configs/engine.yaml"


# =============================================================================
# CONFIGURATION DATACLASS
# =============================================================================

@dataclass(frozen=True)
class Config:
    """
    Immutable engine configuration.
    All values from YAML. No hidden state.
    """

    # -- Paths --
    definitions_path: str = "volumes/definitions"
    executions_path: str = "volumes/executions"
    tools_config_path: str = "configs/tools.yaml"
    providers_config_path: str = "configs/providers.yaml"
    logs_path: str = "logs"

    # -- Execution --
    execution_timeout: float = 300.0
    node_timeout: float = 120.0
    cancel_grace_period: float = 2.0
    max_parallel_nodes: int = 10

    # -- LLM --
    llm_max_retries: int = 2
    llm_retry_backoff: float = 1.0
    llm_max_tokens: int = 1000
    llm_temperature: float = 0.7

    # -- HTTP --
    http_timeout: float = 30.0

    # -- Logging --
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def logs_dir(self) -> Path:
        return Path(self.logs_path)


# =============================================================================
# SECRETS - The ONLY thing from environment variables
# =============================================================================

def get_anthropic_api_key() -> Optional[str]:
    """API keys cannot be in version control."""
    return os.getenv("ANTHROPIC_API_KEY")


def get_openai_api_key() -> Optional[str]:
    """API keys cannot be in version control."""
    return os.getenv("OPENAI_API_KEY")


# =============================================================================
# LOADER
# =============================================================================

def load_config(path: str = DEFAULT_CONFIG_PATH) -> Config:
    """
    Load configuration from YAML.
    Returns defaults if file doesn't exist.
    """
    defaults = Config()

    if not Path(path).exists():
        return Config(log_level=os.getenv("LOG_LEVEL", defaults.log_level))

    with open(path) as f:
        y = yaml.safe_load(f) or {}

    # Helper to safely navigate nested dicts
    def get(d: dict, *keys, default=None):
        for k in keys:
            if not isinstance(d, dict):
                return default
            d = d.get(k, {})
        return d if d != {} else default

    return Config(
        # Paths
        definitions_path=get(y, "paths", "definitions") or defaults.definitions_path,
        executions_path=get(y, "paths", "executions") or defaults.executions_path,
        tools_config_path=get(y, "paths", "tools") or defaults.tools_config_path,
        providers_config_path=get(y, "paths", "providers") or defaults.providers_config_path,
        logs_path=get(y, "paths", "logs") or defaults.logs_path,

        # Execution
        execution_timeout=float(get(y, "execution", "timeout") or defaults.execution_timeout),
        node_timeout=float(get(y, "execution", "node_timeout") or defaults.node_timeout),
        cancel_grace_period=float(
            get(y, "execution", "cancel_grace_period") or defaults.cancel_grace_period
        ),
        max_parallel_nodes=int(get(y, "execution", "max_parallel_nodes") or defaults.max_parallel_nodes),

        # LLM
        llm_max_retries=int(get(y, "llm", "max_retries", default=defaults.llm_max_retries)),
        llm_retry_backoff=float(get(y, "llm", "retry_backoff") or defaults.llm_retry_backoff),
        llm_max_tokens=int(get(y, "llm", "max_tokens") or defaults.llm_max_tokens),
        llm_temperature=float(get(y, "llm", "temperature", default=defaults.llm_temperature)),

        # HTTP
        http_timeout=float(get(y, "http", "timeout") or defaults.http_timeout),

        # Logging
        log_level=os.getenv("LOG_LEVEL", get(y, "logging", "level") or defaults.log_level),
        log_format=get(y, "logging", "format") or defaults.log_format,
    )


# =============================================================================
# GLOBAL INSTANCE
# =============================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create global config instance."""
    global _config
    if _config is None:
        config_path = os.getenv("SCENARIO_ENGINE_CONFIG_PATH", DEFAULT_CONFIG_PATH)
        _config = load_config(config_path)
    return _config
