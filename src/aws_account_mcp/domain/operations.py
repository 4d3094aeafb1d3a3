"""Domain objects for tool routing."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class OperationKey:
    """Composite discriminator selecting exactly one route of a tool."""

    parts: tuple[str, ...]

    @classmethod
    def of(cls, *parts: str) -> "OperationKey":
        return cls(tuple(parts))

    @property
    def key(self) -> str:
        return ":".join(self.parts)

    @property
    def family(self) -> str:
        """Resource family used for cache invalidation, e.g. ``ec2`` for ``ec2-instances``."""
        return self.parts[0].split("-")[0]

    def __str__(self) -> str:
        return self.key
