"""
Browser domain.
"""

from __future__ import annotations

from typing import Any, Optional

from cdpwire.domains.base import CDPModel, CDPParams, Domain
from cdpwire.models import CommandMode


class GetVersionResult(CDPModel):
    protocol_version: str
    product: str
    revision: str
    user_agent: str
    js_version: str


class SetDownloadBehaviorParams(CDPParams):
    behavior: str
    browser_context_id: Optional[str] = None
    download_path: Optional[str] = None
    events_enabled: Optional[bool] = None


class DownloadWillBeginEvent(CDPModel):
    """Fired when page is about to start a download."""

    frame_id: str
    guid: str
    url: str
    suggested_filename: str


class DownloadProgressEvent(CDPModel):
    """Fired when download makes progress; ``state`` ends as completed or canceled."""

    guid: str
    total_bytes: float
    received_bytes: float
    state: str


class Browser(Domain):
    """Browser-wide actions: version info, shutdown and downloads."""

    name = "Browser"

    def __init__(self, client: Any) -> None:
        super().__init__(client)
        self.download_will_begin = self._event("downloadWillBegin", DownloadWillBeginEvent)
        self.download_progress = self._event("downloadProgress", DownloadProgressEvent)

    async def get_version(
        self, *, mode: CommandMode = CommandMode.DEFAULT
    ) -> GetVersionResult:
        return await self._call("getVersion", returns=GetVersionResult, mode=mode)

    async def close(self, *, mode: CommandMode = CommandMode.DEFAULT) -> None:
        """Close the browser gracefully."""
        await self._call("close", mode=mode)

    async def set_download_behavior(
        self,
        behavior: str,
        *,
        mode: CommandMode = CommandMode.DEFAULT,
        **options: Any,
    ) -> None:
        """Set the behavior when downloading a file.

        ``behavior`` is one of ``deny``, ``allow``, ``allowAndName`` or ``default``.
        """
        params = SetDownloadBehaviorParams(behavior=behavior, **options)
        await self._call("setDownloadBehavior", params, mode=mode)


__all__ = [
    "GetVersionResult",
    "SetDownloadBehaviorParams",
    "DownloadWillBeginEvent",
    "DownloadProgressEvent",
    "Browser",
]
