"""Principal and request-scoped context handed to the booking core."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .core.config import Settings


@dataclass(frozen=True)
class CurrentUser:
    """Identity supplied by the upstream session collaborator."""

    id: str
    email: Optional[str] = None


@dataclass(frozen=True)
class RequestContext:
    """
    Explicit per-request state for core operations.

    Carries the acting user and the settings snapshot so services never
    read session or environment globals themselves.
    """

    user: CurrentUser
    settings: "Settings"

    @property
    def user_id(self) -> str:
        return self.user.id

    @property
    def payment_disabled(self) -> bool:
        return bool(self.settings.payment_disabled)
