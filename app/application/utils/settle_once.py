from __future__ import annotations


class SettleOnce:
    """Single-assignment cell: the first source to claim it wins, later claims are no-ops."""

    def __init__(self) -> None:
        self._source: str | None = None

    @property
    def settled(self) -> bool:
        return self._source is not None

    @property
    def source(self) -> str | None:
        return self._source

    def claim(self, source: str) -> bool:
        if self._source is not None:
            return False
        self._source = source
        return True
