# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Definition Store

Versioned scenario definitions as JSON files:

    definitions/
    └── {definition_id}/
        └── versions/
            ├── {version_id}.json
            └── {version_id}.json

Exactly one version per definition is meant to be active; production runs use
it, test runs may pin a draft version instead.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pydantic

from scenario_engine.core.errors import ConflictError, NotFoundError, ValidationError
from scenario_engine.core.logging import get_service_logger
from scenario_engine.engine.models import ScenarioVersion
from scenario_engine.repair import needs_repair, trigger_only_definition

logger = get_service_logger("definition_store")


class DefinitionStore:
    """
    Manages scenario definition versions.

    Responsibilities:
    - Read and write version snapshots
    - Resolve a definition reference to a version
    - Track which version is active
    """

    def __init__(self, definitions_dir: Path):
        self.definitions_dir = Path(definitions_dir)
        self.definitions_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"DefinitionStore initialized with directory: {self.definitions_dir}")

    def _versions_dir(self, definition_id: str) -> Path:
        return self.definitions_dir / definition_id / "versions"

    def _load(self, file_path: Path) -> ScenarioVersion:
        try:
            return ScenarioVersion.model_validate(json.loads(file_path.read_text()))
        except (json.JSONDecodeError, pydantic.ValidationError) as e:
            raise ValidationError(f"Invalid version file {file_path.name}: {e}", field="version")

    async def list_definitions(self) -> List[str]:
        """Definition ids that have at least one version"""
        return sorted(
            d.name for d in self.definitions_dir.iterdir()
            if d.is_dir() and any((d / "versions").glob("*.json"))
        )

    async def list_versions(self, definition_id: str) -> List[ScenarioVersion]:
        """All versions of a definition, oldest first"""
        versions = []
        for file in self._versions_dir(definition_id).glob("*.json"):
            try:
                versions.append(self._load(file))
            except ValidationError as e:
                logger.warning(f"Skipping invalid version file: {e.message}")
        return sorted(versions, key=lambda v: v.created_at)

    async def get_version(self, definition_id: str, version_id: str) -> ScenarioVersion:
        file_path = self._versions_dir(definition_id) / f"{version_id}.json"
        if not file_path.exists():
            raise NotFoundError("Scenario version", f"{definition_id}/{version_id}")
        return self._load(file_path)

    async def resolve(self, definition_id: str, version_id: Optional[str] = None) -> ScenarioVersion:
        """
        Resolve a definition reference to a version.

        Args:
            definition_id: Scenario/workflow id
            version_id: Pinned version (test runs); None means the active one

        Raises:
            NotFoundError: No such version, or no active version
        """
        if version_id is not None:
            return await self.get_version(definition_id, version_id)

        active = [v for v in await self.list_versions(definition_id) if v.is_active]
        if not active:
            raise NotFoundError("Active scenario version", definition_id)

        if len(active) > 1:
            logger.warning(
                f"{len(active)} active versions for {definition_id}, using the newest",
                extra={"definition_id": definition_id},
            )
        return active[-1]

    async def save_version(self, version: ScenarioVersion, overwrite: bool = False) -> ScenarioVersion:
        """
        Write a version snapshot.

        A graph without nodes is never written as is: it is replaced by a
        single trigger node carrying the version's trigger type.

        Raises:
            ConflictError: Version exists and overwrite is False
        """
        versions_dir = self._versions_dir(version.definition_id)
        versions_dir.mkdir(parents=True, exist_ok=True)
        file_path = versions_dir / f"{version.version_id}.json"

        if file_path.exists() and not overwrite:
            raise ConflictError(
                f"Version already exists: {version.definition_id}/{version.version_id}",
                resource="ScenarioVersion",
            )

        if needs_repair(version.orchestration_definition):
            logger.warning(
                f"Version {version.definition_id}/{version.version_id} has no nodes, saving a trigger-only graph",
                extra={"definition_id": version.definition_id, "trigger_type": version.trigger_type.value},
            )
            version = version.model_copy(
                update={"orchestration_definition": trigger_only_definition(version.trigger_type)}
            )

        file_path.write_text(version.model_dump_json(indent=2))
        logger.info(f"Saved version {version.definition_id}/{version.version_id}")
        return version

    async def activate(self, definition_id: str, version_id: str) -> ScenarioVersion:
        """Mark one version active and every other version of the definition inactive"""
        target = await self.get_version(definition_id, version_id)

        for version in await self.list_versions(definition_id):
            should_be_active = version.version_id == target.version_id
            if version.is_active != should_be_active:
                await self.save_version(
                    version.model_copy(update={"is_active": should_be_active}),
                    overwrite=True,
                )

        logger.info(f"Activated version {definition_id}/{version_id}")
        return target.model_copy(update={"is_active": True})

    async def update_orchestration(
        self,
        definition_id: str,
        version_id: str,
        orchestration: Dict[str, Any],
    ) -> ScenarioVersion:
        """Replace the graph of an existing version (used by repair)"""
        version = await self.get_version(definition_id, version_id)
        updated = version.model_copy(update={"orchestration_definition": orchestration})
        return await self.save_version(updated, overwrite=True)
