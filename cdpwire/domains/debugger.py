"""
Debugger domain.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import Field

from cdpwire.domains.base import CDPModel, CDPParams, Domain, deprecated
from cdpwire.domains.runtime import RemoteObject
from cdpwire.models import CommandMode


class Location(CDPModel):
    script_id: str
    line_number: int
    column_number: Optional[int] = None


class Scope(CDPModel):
    type: str
    object: RemoteObject
    name: Optional[str] = None


class CallFrame(CDPModel):
    """JavaScript call frame."""

    call_frame_id: str
    function_name: str
    location: Location
    url: str = ""
    scope_chain: list[Scope] = []
    this: Optional[RemoteObject] = None


class EnableResult(CDPModel):
    debugger_id: str


class SetBreakpointByUrlParams(CDPParams):
    line_number: int
    url: Optional[str] = None
    url_regex: Optional[str] = None
    script_hash: Optional[str] = None
    column_number: Optional[int] = None
    condition: Optional[str] = None


class SetBreakpointByUrlResult(CDPModel):
    breakpoint_id: str
    locations: list[Location]


class RemoveBreakpointParams(CDPParams):
    breakpoint_id: str


class GetWasmBytecodeParams(CDPParams):
    script_id: str


class GetWasmBytecodeResult(CDPModel):
    bytecode: str


class PausedEvent(CDPModel):
    """Fired when the VM stopped on a breakpoint, exception or any other stop criteria."""

    call_frames: list[CallFrame]
    reason: str
    data: Optional[dict[str, Any]] = None
    hit_breakpoints: Optional[list[str]] = None


class ResumedEvent(CDPModel):
    """Fired when the virtual machine resumed execution."""


class ScriptParsedEvent(CDPModel):
    script_id: str
    url: str
    start_line: int
    start_column: int
    end_line: int
    end_column: int
    execution_context_id: int
    hash: str
    source_map_url: Optional[str] = Field(None, alias="sourceMapURL")
    is_module: Optional[bool] = None


class Debugger(Domain):
    """JavaScript debugging: breakpoints, stepping and call frames."""

    name = "Debugger"

    def __init__(self, client: Any) -> None:
        super().__init__(client)
        self.paused = self._event("paused", PausedEvent)
        self.resumed = self._event("resumed", ResumedEvent, parameterless=True)
        self.script_parsed = self._event("scriptParsed", ScriptParsedEvent)

    async def enable(self, *, mode: CommandMode = CommandMode.DEFAULT) -> str:
        """Enable the debugger for the given page.

        Returns:
            Unique identifier of the debugger.
        """
        result = await self._call("enable", returns=EnableResult, mode=mode)
        return result.debugger_id

    async def disable(self, *, mode: CommandMode = CommandMode.DEFAULT) -> None:
        await self._call("disable", mode=mode)

    async def pause(self, *, mode: CommandMode = CommandMode.DEFAULT) -> None:
        await self._call("pause", mode=mode)

    async def resume(self, *, mode: CommandMode = CommandMode.DEFAULT) -> None:
        await self._call("resume", mode=mode)

    async def step_over(self, *, mode: CommandMode = CommandMode.DEFAULT) -> None:
        await self._call("stepOver", mode=mode)

    async def set_breakpoint_by_url(
        self,
        line_number: int,
        *,
        mode: CommandMode = CommandMode.DEFAULT,
        **options: Any,
    ) -> SetBreakpointByUrlResult:
        """Set a breakpoint at the given location in every matching script.

        One of ``url``, ``url_regex`` or ``script_hash`` should be passed.
        """
        params = SetBreakpointByUrlParams(line_number=line_number, **options)
        return await self._call(
            "setBreakpointByUrl", params, SetBreakpointByUrlResult, mode=mode
        )

    async def remove_breakpoint(
        self, breakpoint_id: str, *, mode: CommandMode = CommandMode.DEFAULT
    ) -> None:
        await self._call(
            "removeBreakpoint",
            RemoveBreakpointParams(breakpoint_id=breakpoint_id),
            mode=mode,
        )

    @deprecated
    async def get_wasm_bytecode(
        self, script_id: str, *, mode: CommandMode = CommandMode.DEFAULT
    ) -> str:
        """
        Return the base64-encoded bytecode of a WebAssembly script.

        Superseded by ``getScriptSource``, which also returns the bytecode.
        """
        result = await self._call(
            "getWasmBytecode",
            GetWasmBytecodeParams(script_id=script_id),
            GetWasmBytecodeResult,
            mode=mode,
        )
        return result.bytecode


__all__ = [
    "Location",
    "Scope",
    "CallFrame",
    "EnableResult",
    "SetBreakpointByUrlParams",
    "SetBreakpointByUrlResult",
    "RemoveBreakpointParams",
    "GetWasmBytecodeParams",
    "GetWasmBytecodeResult",
    "PausedEvent",
    "ResumedEvent",
    "ScriptParsedEvent",
    "Debugger",
]
