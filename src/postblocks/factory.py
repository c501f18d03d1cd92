"""Block construction."""
from __future__ import annotations

import uuid
from collections.abc import Mapping
from typing import Any

from postblocks.types import Block


def create_block(name: str, attributes: Mapping[str, Any] | None = None) -> Block:
    """Return a new block with a fresh uid and a private copy of *attributes*."""
    return Block(
        uid=str(uuid.uuid4()),
        name=name,
        attributes=dict(attributes or {}),
    )
