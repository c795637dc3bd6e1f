"""
Runtime domain.

Exposes JavaScript evaluation and the mirror objects the browser hands back.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import Field

from cdpwire.domains.base import CDPModel, CDPParams, Domain, experimental
from cdpwire.models import CommandMode


class RemoteObject(CDPModel):
    """Mirror object referencing the original JavaScript object."""

    type: str
    subtype: Optional[str] = None
    class_name: Optional[str] = None
    value: Optional[Any] = None
    unserializable_value: Optional[str] = None
    description: Optional[str] = None
    object_id: Optional[str] = None


class ExceptionDetails(CDPModel):
    """Detailed information about an exception or early error."""

    exception_id: int
    text: str
    line_number: int
    column_number: int
    script_id: Optional[str] = None
    url: Optional[str] = None
    exception: Optional[RemoteObject] = None
    execution_context_id: Optional[int] = None


class CallArgument(CDPModel):
    """Argument of a ``callFunctionOn`` call; set at most one member."""

    value: Optional[Any] = None
    unserializable_value: Optional[str] = None
    object_id: Optional[str] = None


class ExecutionContextDescription(CDPModel):
    id: int
    origin: str
    name: str
    unique_id: Optional[str] = None
    aux_data: Optional[dict[str, Any]] = None


class EvaluateParams(CDPParams):
    expression: str
    object_group: Optional[str] = None
    include_command_line_api: Optional[bool] = Field(
        None, alias="includeCommandLineAPI"
    )
    silent: Optional[bool] = None
    context_id: Optional[int] = None
    return_by_value: Optional[bool] = None
    generate_preview: Optional[bool] = None
    user_gesture: Optional[bool] = None
    await_promise: Optional[bool] = None
    throw_on_side_effect: Optional[bool] = None
    timeout: Optional[float] = None
    disable_breaks: Optional[bool] = None
    repl_mode: Optional[bool] = None
    allow_unsafe_eval_blocked_by_csp: Optional[bool] = Field(
        None, alias="allowUnsafeEvalBlockedByCSP"
    )
    unique_context_id: Optional[str] = None


class EvaluateResult(CDPModel):
    result: RemoteObject
    exception_details: Optional[ExceptionDetails] = None


class CallFunctionOnParams(CDPParams):
    function_declaration: str
    object_id: Optional[str] = None
    arguments: Optional[list[CallArgument]] = None
    silent: Optional[bool] = None
    return_by_value: Optional[bool] = None
    generate_preview: Optional[bool] = None
    user_gesture: Optional[bool] = None
    await_promise: Optional[bool] = None
    execution_context_id: Optional[int] = None
    object_group: Optional[str] = None


class CallFunctionOnResult(CDPModel):
    result: RemoteObject
    exception_details: Optional[ExceptionDetails] = None


class ReleaseObjectParams(CDPParams):
    object_id: str


class AddBindingParams(CDPParams):
    name: str
    execution_context_name: Optional[str] = None


class ConsoleAPICalledEvent(CDPModel):
    """Issued when console API was called."""

    type: str
    args: list[RemoteObject]
    execution_context_id: int
    timestamp: float
    stack_trace: Optional[dict[str, Any]] = None
    context: Optional[str] = None


class ExceptionThrownEvent(CDPModel):
    """Issued when an exception was thrown and unhandled."""

    timestamp: float
    exception_details: ExceptionDetails


class ExecutionContextCreatedEvent(CDPModel):
    context: ExecutionContextDescription


class ExecutionContextsClearedEvent(CDPModel):
    """Issued when all execution contexts were cleared in the browser."""


class BindingCalledEvent(CDPModel):
    """Notification that a binding added with ``addBinding`` was called."""

    name: str
    payload: str
    execution_context_id: int


class Runtime(Domain):
    """JavaScript runtime: evaluation, remote objects and console events."""

    name = "Runtime"

    def __init__(self, client: Any) -> None:
        super().__init__(client)
        self.console_api_called = self._event("consoleAPICalled", ConsoleAPICalledEvent)
        self.exception_thrown = self._event("exceptionThrown", ExceptionThrownEvent)
        self.execution_context_created = self._event(
            "executionContextCreated", ExecutionContextCreatedEvent
        )
        self.execution_contexts_cleared = self._event(
            "executionContextsCleared",
            ExecutionContextsClearedEvent,
            parameterless=True,
        )
        self.binding_called = self._event("bindingCalled", BindingCalledEvent)

    async def enable(self, *, mode: CommandMode = CommandMode.DEFAULT) -> None:
        """Enable reporting of execution context creation."""
        await self._call("enable", mode=mode)

    async def disable(self, *, mode: CommandMode = CommandMode.DEFAULT) -> None:
        await self._call("disable", mode=mode)

    async def evaluate(
        self,
        expression: str,
        *,
        mode: CommandMode = CommandMode.DEFAULT,
        **options: Any,
    ) -> EvaluateResult:
        """Evaluate an expression on the global object.

        Args:
            expression: Expression to evaluate.
            mode: Command mode.
            **options: Any other ``EvaluateParams`` member, e.g.
                ``return_by_value=True``.
        """
        params = EvaluateParams(expression=expression, **options)
        return await self._call("evaluate", params, EvaluateResult, mode=mode)

    async def call_function_on(
        self,
        function_declaration: str,
        *,
        mode: CommandMode = CommandMode.DEFAULT,
        **options: Any,
    ) -> CallFunctionOnResult:
        """Call a function with a given declaration on a given object."""
        params = CallFunctionOnParams(
            function_declaration=function_declaration, **options
        )
        return await self._call("callFunctionOn", params, CallFunctionOnResult, mode=mode)

    async def release_object(
        self, object_id: str, *, mode: CommandMode = CommandMode.DEFAULT
    ) -> None:
        await self._call("releaseObject", ReleaseObjectParams(object_id=object_id), mode=mode)

    @experimental
    async def add_binding(
        self,
        name: str,
        execution_context_name: Optional[str] = None,
        *,
        mode: CommandMode = CommandMode.DEFAULT,
    ) -> None:
        """Expose ``window[name]``; calls to it fire ``bindingCalled``."""
        params = AddBindingParams(name=name, execution_context_name=execution_context_name)
        await self._call("addBinding", params, mode=mode)

    async def run_if_waiting_for_debugger(
        self, *, mode: CommandMode = CommandMode.DEFAULT
    ) -> None:
        await self._call("runIfWaitingForDebugger", mode=mode)


__all__ = [
    "RemoteObject",
    "ExceptionDetails",
    "CallArgument",
    "ExecutionContextDescription",
    "EvaluateParams",
    "EvaluateResult",
    "CallFunctionOnParams",
    "CallFunctionOnResult",
    "ReleaseObjectParams",
    "AddBindingParams",
    "ConsoleAPICalledEvent",
    "ExceptionThrownEvent",
    "ExecutionContextCreatedEvent",
    "ExecutionContextsClearedEvent",
    "BindingCalledEvent",
    "Runtime",
]
