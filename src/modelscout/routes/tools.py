"""Agent tool listing and execution endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request

from modelscout.models.requests import ToolRequest
from modelscout.models.responses import ToolResponse
from modelscout.tools.registry import get_tool_definition, get_tool_definitions

router = APIRouter(prefix="/tools")


@router.get("")
async def list_tools() -> list[dict[str, Any]]:
    """Return all tool definitions."""
    return get_tool_definitions()


@router.post("/{name}", response_model=ToolResponse)
def run_tool(name: str, req: ToolRequest, request: Request) -> ToolResponse:
    """Execute a tool by name."""
    if get_tool_definition(name) is None:
        raise HTTPException(status_code=404, detail=f"Unknown tool: {name}")
    output = request.app.state.services.executor.execute(name, req.input)
    return ToolResponse(**output)
