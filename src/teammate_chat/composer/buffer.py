"""Composition buffer state and IME composition tracking."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

# Key names and key code some platforms report while an IME is composing.
IME_PROCESS_KEYS = frozenset({"Process", "Unidentified"})
IME_PROCESS_KEY_CODE = 229


@dataclass
class CompositionBuffer:
    """Full text of the composer plus the cursor offset into it."""

    text: str = ""
    cursor: int = 0
    composing: bool = False

    def clear(self) -> None:
        self.text = ""
        self.cursor = 0


@dataclass(frozen=True)
class KeySignal:
    """Platform-neutral description of one key press."""

    key: str
    shift: bool = False
    ctrl: bool = False
    meta: bool = False
    is_composing: bool = False
    key_code: int | None = None

    @property
    def indicates_composition(self) -> bool:
        """True when the platform reports this key as part of IME input."""
        return (
            self.is_composing
            or self.key in IME_PROCESS_KEYS
            or self.key_code == IME_PROCESS_KEY_CODE
        )


class ImeTracker:
    """Track whether an input method is mid-composition.

    Composition is considered active until one event-loop tick after it
    ends, because the confirming Enter of an IME arrives right after the
    composition-end notification.
    """

    def __init__(self) -> None:
        self._composing = False
        self._settling = False
        self._settle_handle: asyncio.Handle | None = None

    @property
    def active(self) -> bool:
        return self._composing or self._settling

    def composition_start(self) -> None:
        self._cancel_settle()
        self._composing = True

    def composition_end(self) -> None:
        self._composing = False
        self._settling = True
        self._cancel_settle()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Without a loop the caller must call settle() itself.
            return
        self._settle_handle = loop.call_soon(self.settle)

    def settle(self) -> None:
        self._settling = False
        self._settle_handle = None

    def _cancel_settle(self) -> None:
        if self._settle_handle is not None:
            self._settle_handle.cancel()
            self._settle_handle = None

    def blocks_submit(self, signal: KeySignal | None = None) -> bool:
        """True when a submit must be suppressed because of IME input."""
        if self.active:
            return True
        return signal is not None and signal.indicates_composition
