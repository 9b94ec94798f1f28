# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Test Suite for the Scenario Engine

Structure:
- engine/: validation, planning and runtime tests
- unit/: Unit tests for services and node executors
"""
