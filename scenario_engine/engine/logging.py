# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Scenario Execution Event Logging

Structured lifecycle events for one run: written to the engine logger, kept
in memory for the caller, optionally appended to a per-execution log file
and forwarded to a real-time update callback.

A failing log file or callback never fails the run.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

import aiofiles

from scenario_engine.core.logging import get_engine_logger, log_event

logger = get_engine_logger("runtime")

UpdateCallback = Callable[[Dict[str, Any]], Awaitable[None]]


class ExecutionEventLogger:
    """
    Logs scenario execution events.

    Fails gracefully if the log file or the update callback is unavailable.
    """

    def __init__(
        self,
        execution_id: str,
        definition_id: str,
        update_callback: Optional[UpdateCallback] = None,
        log_file: Optional[Path] = None,
    ):
        self.execution_id = execution_id
        self.definition_id = definition_id
        self.update_callback = update_callback
        self.log_file = log_file
        self.entries: List[Dict[str, Any]] = []

    async def execution_started(self, trigger_type: str, plan_order: List[str]) -> None:
        await self._emit(
            "execution_started", "INFO",
            trigger_type=trigger_type,
            plan_order=plan_order,
        )

    async def node_started(self, node_id: str, node_type: str) -> None:
        await self._emit("node_started", "INFO", node_id=node_id, node_type=node_type)

    async def node_succeeded(self, node_id: str, node_type: str, duration: float) -> None:
        await self._emit(
            "node_succeeded", "INFO",
            node_id=node_id,
            node_type=node_type,
            duration=round(duration, 4),
        )

    async def node_failed(self, node_id: str, node_type: str, error: str) -> None:
        await self._emit("node_failed", "ERROR", node_id=node_id, node_type=node_type, error=error)

    async def node_skipped(self, node_id: str, reason: str) -> None:
        await self._emit("node_skipped", "INFO", node_id=node_id, reason=reason)

    async def execution_completed(self, status: str, duration: float, error: Optional[str] = None) -> None:
        await self._emit(
            "execution_completed",
            "INFO" if error is None else "ERROR",
            status=status,
            duration=round(duration, 4),
            error=error,
        )

    async def _emit(self, event: str, level: str, **fields: Any) -> None:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event": event,
            "execution_id": self.execution_id,
            "definition_id": self.definition_id,
            **fields,
        }
        self.entries.append(entry)

        log_event(
            logger, event, level,
            execution_id=self.execution_id,
            definition_id=self.definition_id,
            **fields,
        )

        if self.log_file is not None:
            await self._write(entry)

        if self.update_callback is not None:
            try:
                await self.update_callback({"type": event, **entry})
            except Exception as e:
                logger.warning(
                    f"Update callback failed for {event}: {e}",
                    extra={"execution_id": self.execution_id},
                )

    async def _write(self, entry: Dict[str, Any]) -> None:
        try:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(self.log_file, "a") as f:
                await f.write(json.dumps(entry, default=str) + "\n")
        except OSError as e:
            logger.warning(
                f"Cannot write execution log {self.log_file}: {e}",
                extra={"execution_id": self.execution_id},
            )
            self.log_file = None
