from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Principal:
    """Identity issued by the auth subsystem."""

    id: str
    email: str


@dataclass(frozen=True)
class Account:
    """Application-level users row; ``id`` is the principal id."""

    id: str
    email: str
    username: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
