# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Execution Store - Persistent storage for scenario execution records
All history in text files.

Records are write-once: saving an id that already exists is a conflict.
One store-level async lock serializes the exists-check and write, so two
writers can never both create the same record.
"""

import asyncio
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import aiofiles
import aiofiles.os
import pydantic

from scenario_engine.core.errors import ConflictError
from scenario_engine.core.logging import get_service_logger
from scenario_engine.engine.models import ExecutionRecord

logger = get_service_logger("execution_store")


class ExecutionStore:
    """
    Store and query execution records.

    Storage structure:
        executions/
        └── {YYYY-MM-DD}/
            ├── exec_20250101_120000_1a2b3c4d.json
            └── exec_20250101_120501_5e6f7a8b.json
    """

    def __init__(self, base_dir: str):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

        # Held only while a record is created
        self._write_lock = asyncio.Lock()

    def _record_path(self, execution_id: str) -> Path:
        # exec_YYYYMMDD_HHMMSS_hash
        date_str = execution_id.split("_")[1]
        date = datetime.strptime(date_str, "%Y%m%d").strftime("%Y-%m-%d")
        return self.base_dir / date / f"{execution_id}.json"

    async def save(self, record: ExecutionRecord) -> str:
        """
        Write a record once.

        Returns:
            Path to saved file

        Raises:
            ConflictError: A record with this id was already written
            OSError: The file could not be written
        """
        execution_file = self._record_path(record.execution_id)
        execution_file.parent.mkdir(parents=True, exist_ok=True)

        async with self._write_lock:
            if await aiofiles.os.path.exists(execution_file):
                raise ConflictError(
                    f"Execution record already exists: {record.execution_id}",
                    resource="ExecutionRecord",
                )

            async with aiofiles.open(execution_file, "w") as f:
                await f.write(record.model_dump_json(indent=2, by_alias=True))

        logger.info(
            f"Saved execution record {record.execution_id}",
            extra={"execution_id": record.execution_id, "status": record.status.value},
        )
        return str(execution_file)

    async def get(self, execution_id: str) -> Optional[ExecutionRecord]:
        """Get execution record by ID, or None"""
        try:
            execution_file = self._record_path(execution_id)
        except (IndexError, ValueError):
            return None

        if not await aiofiles.os.path.exists(execution_file):
            return None

        async with aiofiles.open(execution_file, "r") as f:
            return ExecutionRecord.model_validate_json(await f.read())

    async def list(
        self,
        definition_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[ExecutionRecord]:
        """
        List records, newest first.

        Args:
            definition_id: Filter by definition
            status: Filter by status (succeeded/failed)
            limit: Max results to return
            offset: Skip first N results
        """
        records: List[ExecutionRecord] = []

        for date_dir in sorted(self.base_dir.glob("*"), reverse=True):
            if not date_dir.is_dir():
                continue

            for execution_file in sorted(date_dir.glob("exec_*.json"), reverse=True):
                try:
                    async with aiofiles.open(execution_file, "r") as f:
                        record = ExecutionRecord.model_validate_json(await f.read())
                except (OSError, pydantic.ValidationError) as e:
                    logger.warning(f"Failed to load execution {execution_file}: {e}")
                    continue

                if definition_id and record.definition_id != definition_id:
                    continue
                if status and record.status.value != status:
                    continue

                records.append(record)
                if len(records) >= limit + offset:
                    return records[offset:offset + limit]

        return records[offset:offset + limit]
