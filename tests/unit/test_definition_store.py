# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for DefinitionStore

Tests version persistence, resolution and activation.
"""

import pytest

from scenario_engine.core.errors import ConflictError, NotFoundError
from scenario_engine.engine.models import ScenarioVersion, TriggerType
from scenario_engine.engine.validation import load
from scenario_engine.repair import trigger_only_definition
from scenario_engine.services.definition_store import DefinitionStore

GRAPH = {"nodes": [{"id": "t", "type": "trigger"}], "edges": []}


def version(version_id, created_at, is_active=False, definition_id="scn-1", **kwargs):
    return ScenarioVersion(
        version_id=version_id,
        definition_id=definition_id,
        created_at=created_at,
        is_active=is_active,
        orchestration_definition=kwargs.pop("orchestration_definition", GRAPH),
        **kwargs,
    )


@pytest.fixture
def store(tmp_path):
    return DefinitionStore(tmp_path / "definitions")


class TestSaveAndGet:
    """Test save_version / get_version"""

    @pytest.mark.asyncio
    async def test_round_trip(self, store):
        await store.save_version(version("v1", "2025-01-01T00:00:00Z", trigger_type=TriggerType.WEBHOOK))

        loaded = await store.get_version("scn-1", "v1")

        assert loaded.trigger_type == TriggerType.WEBHOOK
        assert loaded.orchestration_definition == GRAPH

    @pytest.mark.asyncio
    async def test_save_existing_conflicts(self, store):
        await store.save_version(version("v1", "2025-01-01T00:00:00Z"))

        with pytest.raises(ConflictError, match="already exists"):
            await store.save_version(version("v1", "2025-01-01T00:00:00Z"))

    @pytest.mark.asyncio
    async def test_get_missing_version(self, store):
        with pytest.raises(NotFoundError, match="scn-1/v9"):
            await store.get_version("scn-1", "v9")

    @pytest.mark.asyncio
    async def test_invalid_files_are_skipped(self, store):
        await store.save_version(version("v1", "2025-01-01T00:00:00Z"))
        (store.definitions_dir / "scn-1" / "versions" / "broken.json").write_text("{not json")

        versions = await store.list_versions("scn-1")

        assert [v.version_id for v in versions] == ["v1"]


class TestEmptyGraphGuard:
    """Graphs without nodes are never persisted"""

    @pytest.mark.asyncio
    async def test_empty_graph_saved_as_trigger_only(self, store):
        saved = await store.save_version(version(
            "v1",
            "2025-01-01T00:00:00Z",
            is_active=True,
            trigger_type=TriggerType.SCHEDULE,
            orchestration_definition={"nodes": [], "edges": []},
        ))

        resolved = await store.resolve("scn-1")

        assert resolved.orchestration_definition == trigger_only_definition(TriggerType.SCHEDULE)
        assert saved.orchestration_definition == resolved.orchestration_definition
        assert load(resolved.orchestration_definition).trigger_ids == ["trigger-node"]

    @pytest.mark.asyncio
    async def test_update_to_empty_graph_is_repaired(self, store):
        await store.save_version(version("v1", "2025-01-01T00:00:00Z", trigger_type=TriggerType.API))

        updated = await store.update_orchestration("scn-1", "v1", {"nodes": None})

        assert updated.orchestration_definition == trigger_only_definition(TriggerType.API)
        assert (await store.get_version("scn-1", "v1")).orchestration_definition["nodes"][0]["type"] == "trigger"


class TestResolve:
    """Test resolve method"""

    @pytest.mark.asyncio
    async def test_resolves_active_version(self, store):
        await store.save_version(version("v1", "2025-01-01T00:00:00Z", is_active=True))
        await store.save_version(version("v2", "2025-02-01T00:00:00Z"))

        resolved = await store.resolve("scn-1")

        assert resolved.version_id == "v1"

    @pytest.mark.asyncio
    async def test_pinned_version_may_be_draft(self, store):
        await store.save_version(version("v1", "2025-01-01T00:00:00Z", is_active=True))
        await store.save_version(version("v2", "2025-02-01T00:00:00Z"))

        resolved = await store.resolve("scn-1", "v2")

        assert resolved.version_id == "v2"

    @pytest.mark.asyncio
    async def test_no_active_version(self, store):
        await store.save_version(version("v1", "2025-01-01T00:00:00Z"))

        with pytest.raises(NotFoundError, match="Active scenario version"):
            await store.resolve("scn-1")

    @pytest.mark.asyncio
    async def test_several_active_uses_newest(self, store):
        await store.save_version(version("v2", "2025-02-01T00:00:00Z", is_active=True))
        await store.save_version(version("v1", "2025-01-01T00:00:00Z", is_active=True))

        resolved = await store.resolve("scn-1")

        assert resolved.version_id == "v2"


class TestActivate:
    """Test activate method"""

    @pytest.mark.asyncio
    async def test_exactly_one_active(self, store):
        await store.save_version(version("v1", "2025-01-01T00:00:00Z", is_active=True))
        await store.save_version(version("v2", "2025-02-01T00:00:00Z"))

        activated = await store.activate("scn-1", "v2")

        assert activated.is_active is True
        active = [v.version_id for v in await store.list_versions("scn-1") if v.is_active]
        assert active == ["v2"]

    @pytest.mark.asyncio
    async def test_activate_missing_version(self, store):
        with pytest.raises(NotFoundError):
            await store.activate("scn-1", "nope")


class TestListAndUpdate:
    """Test list_definitions / update_orchestration"""

    @pytest.mark.asyncio
    async def test_list_definitions(self, store):
        await store.save_version(version("v1", "2025-01-01T00:00:00Z", definition_id="b"))
        await store.save_version(version("v1", "2025-01-01T00:00:00Z", definition_id="a"))
        (store.definitions_dir / "empty").mkdir()

        assert await store.list_definitions() == ["a", "b"]

    @pytest.mark.asyncio
    async def test_update_orchestration(self, store):
        await store.save_version(version("v1", "2025-01-01T00:00:00Z", orchestration_definition=GRAPH))
        new_graph = {"nodes": [{"id": "x", "type": "trigger"}], "edges": []}

        updated = await store.update_orchestration("scn-1", "v1", new_graph)

        assert updated.orchestration_definition == new_graph
        assert (await store.get_version("scn-1", "v1")).orchestration_definition == new_graph
