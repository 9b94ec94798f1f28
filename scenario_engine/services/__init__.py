# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Service layer for the scenario engine.

This package contains:
- scenario_service: Invocation contract (execute a scenario)
- definition_store: Versioned definitions, active/pinned resolution
- execution_store: Write-once execution records
- tool_service: Built-in and catalog tools for action nodes
- llm_provider: Provider catalog and text generation for llm-call nodes

Services receive their collaborators through the constructor; see
scenario_engine.core.dependencies for the default wiring.
"""
