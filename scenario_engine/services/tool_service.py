# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Tool Service - Executes tools referenced by action nodes.

Built-in tools live in code. Custom webhook/api tools are declared in
configs/tools.yaml (all config in text files).
"""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx
import yaml
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from scenario_engine.core.errors import ConfigurationError
from scenario_engine.core.logging import get_service_logger
from scenario_engine.engine.conditions import evaluate_condition

logger = get_service_logger("tool")


class ToolExecutionResult(BaseModel):
    success: bool
    output: Any = None
    error: Optional[str] = None


class CustomToolDefinition(BaseModel):
    """Entry of the tools catalog"""
    id: str
    name: str = ""
    description: str = ""
    type: str                       # webhook | api
    url: str
    method: str = "POST"
    headers: Dict[str, str] = Field(default_factory=dict)
    is_active: bool = True


@dataclass
class BuiltInTool:
    name: str
    description: str
    handler: Callable[[Any], Awaitable[ToolExecutionResult]]


class ToolService:
    """
    Resolves a tool id to a built-in or catalog tool and runs it.

    Tool failures are reported as unsuccessful results, never raised; the
    action node decides what an unsuccessful result means for the run.
    """

    def __init__(
        self,
        tools_config_path: Optional[Path] = None,
        http_timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.tools_config_path = Path(tools_config_path) if tools_config_path else None
        self.http_timeout = http_timeout
        self._http_client = http_client
        self._custom_tools: Optional[Dict[str, CustomToolDefinition]] = None
        self.lock = asyncio.Lock()

        self.builtins: Dict[str, BuiltInTool] = {
            "echo": BuiltInTool("Echo", "Return the input unchanged", self._echo),
            "http-request": BuiltInTool("HTTP Request", "Make HTTP requests to external APIs", self._http_request),
            "data-transform": BuiltInTool("Data Transform", "Select, map or filter data", self._data_transform),
            "delay": BuiltInTool("Delay", "Wait for a duration in milliseconds", self._delay),
            "log": BuiltInTool("Log", "Write a message to the service log", self._log),
        }

    @property
    def http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.http_timeout)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client"""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    async def load_from_config(self) -> Dict[str, CustomToolDefinition]:
        """
        Load custom tools from the YAML catalog.

        Raises:
            ConfigurationError: If the catalog is invalid
        """
        async with self.lock:
            tools: Dict[str, CustomToolDefinition] = {}

            if self.tools_config_path is None or not self.tools_config_path.exists():
                logger.warning(f"Tools config not found at {self.tools_config_path}")
                self._custom_tools = tools
                return tools

            try:
                with open(self.tools_config_path, "r") as f:
                    config_data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in tools config: {e}", str(self.tools_config_path))

            for entry in config_data.get("tools") or []:
                try:
                    tool = CustomToolDefinition.model_validate(entry)
                except PydanticValidationError as e:
                    raise ConfigurationError(f"Invalid tool entry: {e}", str(self.tools_config_path))

                if tool.id in tools or tool.id in self.builtins:
                    raise ConfigurationError(f"Duplicate tool ID: {tool.id}", str(self.tools_config_path))
                tools[tool.id] = tool

            self._custom_tools = tools
            logger.info(f"Loaded {len(tools)} custom tools from config")
            return tools

    async def list_tools(self) -> List[Dict[str, Any]]:
        """Built-in tools followed by active catalog tools"""
        if self._custom_tools is None:
            await self.load_from_config()

        tools = [
            {"id": tool_id, "name": tool.name, "description": tool.description, "type": "built-in"}
            for tool_id, tool in self.builtins.items()
        ]
        tools.extend(
            tool.model_dump(include={"id", "name", "description", "type"})
            for tool in self._custom_tools.values()
            if tool.is_active
        )
        return tools

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute_tool(self, tool_id: str, input: Any) -> ToolExecutionResult:
        """
        Execute a tool.

        Args:
            tool_id: Built-in name or catalog id
            input: Resolved tool input

        Returns:
            ToolExecutionResult (unsuccessful for unknown tools)
        """
        builtin = self.builtins.get(tool_id)
        if builtin is not None:
            return await builtin.handler(input)

        if self._custom_tools is None:
            await self.load_from_config()

        tool = self._custom_tools.get(tool_id)
        if tool is None or not tool.is_active:
            return ToolExecutionResult(success=False, error=f"Tool not found: {tool_id}")

        if tool.type in ("webhook", "api"):
            return await self._call_endpoint(tool, input)

        return ToolExecutionResult(success=False, error=f"Unsupported tool type: {tool.type}")

    async def _call_endpoint(self, tool: CustomToolDefinition, input: Any) -> ToolExecutionResult:
        try:
            response = await self.http_client.request(
                tool.method,
                tool.url,
                headers={"Content-Type": "application/json", **tool.headers},
                json=input,
            )
            response.raise_for_status()
            return ToolExecutionResult(success=True, output=_response_body(response))
        except httpx.HTTPError as e:
            logger.error(f"Tool {tool.id} call failed: {e}")
            return ToolExecutionResult(success=False, error=str(e))

    # ------------------------------------------------------------------
    # Built-in tools
    # ------------------------------------------------------------------

    async def _echo(self, input: Any) -> ToolExecutionResult:
        return ToolExecutionResult(success=True, output=input)

    async def _http_request(self, input: Any) -> ToolExecutionResult:
        if not isinstance(input, dict) or not input.get("url"):
            return ToolExecutionResult(success=False, error="http-request requires a url")

        try:
            response = await self.http_client.request(
                input.get("method", "GET"),
                input["url"],
                headers=input.get("headers") or {},
                json=input.get("body"),
            )
        except httpx.HTTPError as e:
            return ToolExecutionResult(success=False, error=str(e))

        return ToolExecutionResult(
            success=True,
            output={
                "status": response.status_code,
                "status_text": response.reason_phrase,
                "data": _response_body(response),
            },
        )

    async def _data_transform(self, input: Any) -> ToolExecutionResult:
        if not isinstance(input, dict):
            return ToolExecutionResult(success=False, error="data-transform requires an object input")

        data = input.get("data")
        transform_type = input.get("transformType")
        transform_config = input.get("transformConfig") or {}

        try:
            if transform_type == "select":
                result = select_fields(data, transform_config.get("fields") or [])
            elif transform_type == "map":
                result = map_data(data, transform_config.get("mapping") or {})
            elif transform_type == "filter":
                result = filter_data(data, transform_config.get("condition", "True"))
            else:
                raise ValueError(f"Unknown transform type: {transform_type}")
        except (ValueError, TypeError, SyntaxError) as e:
            return ToolExecutionResult(success=False, error=str(e))

        return ToolExecutionResult(success=True, output=result)

    async def _delay(self, input: Any) -> ToolExecutionResult:
        duration = (input or {}).get("duration", 0) if isinstance(input, dict) else 0
        await asyncio.sleep(float(duration) / 1000)
        return ToolExecutionResult(success=True, output={"delayed": duration})

    async def _log(self, input: Any) -> ToolExecutionResult:
        input = input if isinstance(input, dict) else {"message": str(input)}
        message = input.get("message", "")
        level = str(input.get("level", "info")).lower()
        if level == "warn":
            level = "warning"
        if level not in ("debug", "info", "warning", "error"):
            level = "info"

        getattr(logger, level)(message, extra={"data": input.get("data")})
        return ToolExecutionResult(
            success=True,
            output={"logged": True, "message": message, "data": input.get("data")},
        )


# ============================================================================
# Helpers
# ============================================================================

def select_fields(data: Any, fields: List[str]) -> Any:
    """Keep only the given keys (applied per item for lists)"""
    if isinstance(data, list):
        return [select_fields(item, fields) for item in data]
    if not isinstance(data, dict):
        raise TypeError(f"select requires an object, got {type(data).__name__}")
    return {field: data[field] for field in fields if field in data}


def map_data(data: Any, mapping: Dict[str, str]) -> Any:
    """Rename keys: mapping is {new_key: old_key}"""
    if isinstance(data, list):
        return [map_data(item, mapping) for item in data]
    if not isinstance(data, dict):
        raise TypeError(f"map requires an object, got {type(data).__name__}")
    return {new_key: data[old_key] for new_key, old_key in mapping.items() if old_key in data}


def filter_data(data: Any, condition: str) -> List[Any]:
    """Keep items for which the condition holds; the item is bound to `item`"""
    if not isinstance(data, list):
        raise TypeError(f"filter requires an array, got {type(data).__name__}")
    return [item for item in data if evaluate_condition(condition, {"item": item})]


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text
