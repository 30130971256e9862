"""Relay request/response data models."""
from dataclasses import dataclass
from enum import Enum
from typing import Any


class BodyKind(str, Enum):
    """How the relay treats an upstream payload."""
    RAW_TEXT = "raw-text"
    JSON = "json"


@dataclass
class RelayRequest:
    """Inbound relay request (target_url already query-decoded)."""
    target_url: str

    @property
    def is_present(self) -> bool:
        return bool(self.target_url and self.target_url.strip())


@dataclass
class RelayMessages:
    """Short descriptive bodies used for each failure class."""
    missing: str
    upstream_error: str
    transport_error: str
    forbidden: str = "Target host is not allowed."


@dataclass
class RelayResponse:
    """Result of a single relay call."""
    status: int
    body_kind: BodyKind
    body: Any  # bytes for raw-text, parsed JSON for json, str for errors
    media_type: str = "text/plain; charset=utf-8"

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300
