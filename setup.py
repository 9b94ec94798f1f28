# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Setup configuration for the Scenario Orchestration Engine
"""

from setuptools import setup, find_packages

setup(
    name="scenario-engine",
    version="0.1.0",
    description="Orchestration engine for versioned scenario/workflow graphs",
    author="Jason Cafarelli",
    packages=find_packages(include=["scenario_engine", "scenario_engine.*"]),
    py_modules=["repair_empty_definitions"],
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2.0.0",
        "httpx>=0.25.0",
        "pyyaml>=6.0",
        "aiofiles>=23.0.0",
        "anthropic>=0.30.0",
        "openai>=1.30.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "repair-empty-definitions=repair_empty_definitions:main",
        ]
    },
)
