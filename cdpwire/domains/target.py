"""
Target domain.

Supports discovering targets and attaching flattened sessions to them.
"""

from __future__ import annotations

from typing import Any, Optional

from cdpwire.domains.base import CDPModel, CDPParams, Domain
from cdpwire.models import CommandMode


class TargetInfo(CDPModel):
    target_id: str
    type: str
    title: str = ""
    url: str = ""
    attached: bool = False
    opener_id: Optional[str] = None
    browser_context_id: Optional[str] = None
    subtype: Optional[str] = None


class GetTargetsResult(CDPModel):
    target_infos: list[TargetInfo]


class GetTargetInfoParams(CDPParams):
    target_id: Optional[str] = None


class GetTargetInfoResult(CDPModel):
    target_info: TargetInfo


class AttachToTargetParams(CDPParams):
    target_id: str
    flatten: Optional[bool] = None


class AttachToTargetResult(CDPModel):
    session_id: str


class DetachFromTargetParams(CDPParams):
    session_id: Optional[str] = None


class CreateTargetParams(CDPParams):
    url: str
    width: Optional[int] = None
    height: Optional[int] = None
    browser_context_id: Optional[str] = None
    new_window: Optional[bool] = None
    background: Optional[bool] = None


class CreateTargetResult(CDPModel):
    target_id: str


class CloseTargetParams(CDPParams):
    target_id: str


class CloseTargetResult(CDPModel):
    success: bool = True


class SetAutoAttachParams(CDPParams):
    auto_attach: bool
    wait_for_debugger_on_start: bool
    flatten: Optional[bool] = None


class SetDiscoverTargetsParams(CDPParams):
    discover: bool


class AttachedToTargetEvent(CDPModel):
    """Issued when attached to target because of auto-attach or ``attachToTarget``."""

    session_id: str
    target_info: TargetInfo
    waiting_for_debugger: bool = False


class DetachedFromTargetEvent(CDPModel):
    session_id: str
    target_id: Optional[str] = None


class TargetCreatedEvent(CDPModel):
    target_info: TargetInfo


class TargetDestroyedEvent(CDPModel):
    target_id: str


class TargetInfoChangedEvent(CDPModel):
    target_info: TargetInfo


class TargetCrashedEvent(CDPModel):
    target_id: str
    status: str
    error_code: int


class Target(Domain):
    name = "Target"

    def __init__(self, client: Any) -> None:
        super().__init__(client)
        self.attached_to_target = self._event("attachedToTarget", AttachedToTargetEvent)
        self.detached_from_target = self._event(
            "detachedFromTarget", DetachedFromTargetEvent
        )
        self.target_created = self._event("targetCreated", TargetCreatedEvent)
        self.target_destroyed = self._event("targetDestroyed", TargetDestroyedEvent)
        self.target_info_changed = self._event(
            "targetInfoChanged", TargetInfoChangedEvent
        )
        self.target_crashed = self._event("targetCrashed", TargetCrashedEvent)

    async def get_targets(
        self, *, mode: CommandMode = CommandMode.DEFAULT
    ) -> list[TargetInfo]:
        """Retrieve a list of available targets."""
        result = await self._call("getTargets", returns=GetTargetsResult, mode=mode)
        return result.target_infos

    async def get_target_info(
        self,
        target_id: Optional[str] = None,
        *,
        mode: CommandMode = CommandMode.DEFAULT,
    ) -> TargetInfo:
        result = await self._call(
            "getTargetInfo",
            GetTargetInfoParams(target_id=target_id),
            GetTargetInfoResult,
            mode=mode,
        )
        return result.target_info

    async def attach_to_target(
        self,
        target_id: str,
        flatten: Optional[bool] = True,
        *,
        mode: CommandMode = CommandMode.DEFAULT,
    ) -> str:
        """Attach to the target with the given id.

        Returns:
            Id assigned to the session.
        """
        result = await self._call(
            "attachToTarget",
            AttachToTargetParams(target_id=target_id, flatten=flatten),
            AttachToTargetResult,
            mode=mode,
        )
        return result.session_id

    async def detach_from_target(
        self,
        session_id: Optional[str] = None,
        *,
        mode: CommandMode = CommandMode.DEFAULT,
    ) -> None:
        await self._call(
            "detachFromTarget",
            DetachFromTargetParams(session_id=session_id),
            mode=mode,
        )

    async def create_target(
        self,
        url: str = "about:blank",
        *,
        mode: CommandMode = CommandMode.DEFAULT,
        **options: Any,
    ) -> str:
        """Create a new page.

        Returns:
            The id of the page opened.
        """
        result = await self._call(
            "createTarget",
            CreateTargetParams(url=url, **options),
            CreateTargetResult,
            mode=mode,
        )
        return result.target_id

    async def close_target(
        self, target_id: str, *, mode: CommandMode = CommandMode.DEFAULT
    ) -> bool:
        """Close the target. If the target is a page it gets closed too."""
        result = await self._call(
            "closeTarget",
            CloseTargetParams(target_id=target_id),
            CloseTargetResult,
            mode=mode,
        )
        return result.success

    async def set_auto_attach(
        self,
        auto_attach: bool,
        wait_for_debugger_on_start: bool = False,
        flatten: Optional[bool] = True,
        *,
        mode: CommandMode = CommandMode.DEFAULT,
    ) -> None:
        """Control whether to automatically attach to new targets."""
        params = SetAutoAttachParams(
            auto_attach=auto_attach,
            wait_for_debugger_on_start=wait_for_debugger_on_start,
            flatten=flatten,
        )
        await self._call("setAutoAttach", params, mode=mode)

    async def set_discover_targets(
        self, discover: bool, *, mode: CommandMode = CommandMode.DEFAULT
    ) -> None:
        """Control whether to discover available targets and notify via events."""
        await self._call(
            "setDiscoverTargets",
            SetDiscoverTargetsParams(discover=discover),
            mode=mode,
        )


__all__ = [
    "TargetInfo",
    "GetTargetsResult",
    "GetTargetInfoParams",
    "GetTargetInfoResult",
    "AttachToTargetParams",
    "AttachToTargetResult",
    "DetachFromTargetParams",
    "CreateTargetParams",
    "CreateTargetResult",
    "CloseTargetParams",
    "CloseTargetResult",
    "SetAutoAttachParams",
    "SetDiscoverTargetsParams",
    "AttachedToTargetEvent",
    "DetachedFromTargetEvent",
    "TargetCreatedEvent",
    "TargetDestroyedEvent",
    "TargetInfoChangedEvent",
    "TargetCrashedEvent",
    "Target",
]
