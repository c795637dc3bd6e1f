"""
Configuration options classes for cdpwire.

This module provides strongly-typed option classes for the transport and the
connection, with validation and type checking.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .defaults import (
    DEFAULT_CLOSE_TIMEOUT,
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_DEBUG_STRING_LIMIT,
    DEFAULT_EVENT_BUFFER_SIZE,
    DEFAULT_FLATTEN,
    DEFAULT_MAX_MESSAGE_SIZE,
    DEFAULT_OPEN_TIMEOUT,
    DEFAULT_PING_INTERVAL,
    DEFAULT_PING_TIMEOUT,
    DEFAULT_TRACK_SESSIONS,
)


class TransportOptions(BaseModel):
    """WebSocket transport options.

    ``ping_interval`` set to None turns keepalive pings off, which is useful
    when a debugger holds the browser paused for a long time.
    """

    max_message_size: Optional[int] = Field(
        DEFAULT_MAX_MESSAGE_SIZE, ge=1, description="Largest accepted frame in bytes"
    )
    ping_interval: Optional[float] = Field(
        DEFAULT_PING_INTERVAL, gt=0, description="Seconds between keepalive pings"
    )
    ping_timeout: Optional[float] = Field(
        DEFAULT_PING_TIMEOUT, gt=0, description="Seconds to wait for a pong"
    )
    open_timeout: Optional[float] = Field(
        DEFAULT_OPEN_TIMEOUT, gt=0, description="Opening handshake timeout"
    )
    close_timeout: Optional[float] = Field(
        DEFAULT_CLOSE_TIMEOUT, gt=0, description="Closing handshake timeout"
    )

    def merge(self, other: "TransportOptions") -> "TransportOptions":
        """Merge with another TransportOptions, other takes precedence."""
        data = self.model_dump()
        data.update(other.model_dump(exclude_unset=True))
        return TransportOptions(**data)


class ConnectionOptions(BaseModel):
    """Dispatch options for one connection."""

    command_timeout: Optional[float] = Field(
        DEFAULT_COMMAND_TIMEOUT,
        gt=0,
        description="Default seconds to wait for a response; None waits forever",
    )
    event_buffer_size: int = Field(
        DEFAULT_EVENT_BUFFER_SIZE,
        ge=0,
        description="Per-subscriber queue bound; 0 is unbounded",
    )
    debug_string_limit: int = Field(
        DEFAULT_DEBUG_STRING_LIMIT,
        ge=0,
        description="Characters of each frame shown in debug logs",
    )
    track_sessions: bool = Field(
        DEFAULT_TRACK_SESSIONS,
        description="Reject commands for sessions that are not attached",
    )
    flatten: bool = Field(DEFAULT_FLATTEN, description="Attach targets in flat mode")

    @field_validator("command_timeout", mode="before")
    @classmethod
    def parse_command_timeout(cls, v: Any) -> Any:
        """Treat 0 or a negative timeout as no timeout."""
        if isinstance(v, (int, float)) and not isinstance(v, bool) and v <= 0:
            return None
        return v

    def merge(self, other: "ConnectionOptions") -> "ConnectionOptions":
        """Merge with another ConnectionOptions, other takes precedence."""
        data = self.model_dump()
        data.update(other.model_dump(exclude_unset=True))
        return ConnectionOptions(**data)


class CDPWireConfig(BaseModel):
    """Main configuration class combining all options."""

    transport: TransportOptions = Field(
        default_factory=TransportOptions, description="Transport options"
    )
    connection: ConnectionOptions = Field(
        default_factory=ConnectionOptions, description="Connection options"
    )
    profile: Optional[str] = Field(None, description="Configuration profile name")

    @model_validator(mode="after")
    def check_ping(self) -> "CDPWireConfig":
        """A ping timeout without a ping interval is meaningless."""
        if self.transport.ping_interval is None:
            self.transport.ping_timeout = None
        return self

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CDPWireConfig":
        """Create configuration from dictionary."""
        return cls(**data)

    def merge(self, other: "CDPWireConfig") -> "CDPWireConfig":
        """Merge with another CDPWireConfig, other takes precedence."""
        return CDPWireConfig(
            transport=self.transport.merge(other.transport),
            connection=self.connection.merge(other.connection),
            profile=other.profile or self.profile,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary.

        None values are kept: a None timeout means "disabled", not "default".
        """
        return self.model_dump()
