"""Debounced autosave for one editable entity, as an explicit state machine.

States move ``idle -> editing -> saving -> idle``. Server syncs are refused
while the entity is being edited or saved, and during a short grace window
after the last local edit, so a stale snapshot never overwrites fresh input.
The clock is injected; nothing here sleeps or schedules.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 1.5
DEFAULT_SYNC_GRACE_SECONDS = 0.15


class AutosaveState(str, Enum):
    IDLE = "idle"
    EDITING = "editing"
    SAVING = "saving"


class InvalidTransition(RuntimeError):
    def __init__(self, current: AutosaveState, action: str) -> None:
        super().__init__(f"cannot {action} while {current.value}")
        self.current = current
        self.action = action


_ALLOWED: dict[str, frozenset[AutosaveState]] = {
    "begin_save": frozenset({AutosaveState.EDITING}),
    "finish_save": frozenset({AutosaveState.SAVING}),
    "fail_save": frozenset({AutosaveState.SAVING}),
}


@dataclass(slots=True)
class AutosaveMachine:
    entity_id: str
    value: Any = None
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    sync_grace_seconds: float = DEFAULT_SYNC_GRACE_SECONDS
    clock: Callable[[], float] = time.monotonic
    state: AutosaveState = AutosaveState.IDLE
    last_edit_at: float | None = None
    saved_value: Any = None
    last_error: str | None = None
    _dirty_during_save: bool = field(default=False, repr=False)

    def _guard(self, action: str) -> None:
        if self.state not in _ALLOWED[action]:
            raise InvalidTransition(self.state, action)

    def edit(self, value: Any) -> None:
        """Record a local change; restarts the debounce window."""
        self.value = value
        self.last_edit_at = self.clock()
        if self.state is AutosaveState.SAVING:
            self._dirty_during_save = True
        else:
            self.state = AutosaveState.EDITING

    def save_due(self) -> bool:
        if self.state is not AutosaveState.EDITING or self.last_edit_at is None:
            return False
        return self.clock() - self.last_edit_at >= self.debounce_seconds

    def begin_save(self, *, force: bool = False) -> Any:
        """Enter ``saving`` and return the snapshot to persist."""
        self._guard("begin_save")
        if not force and not self.save_due():
            raise InvalidTransition(self.state, "begin_save before debounce elapsed")
        self.state = AutosaveState.SAVING
        self._dirty_during_save = False
        return self.value

    def finish_save(self, saved: Any) -> None:
        self._guard("finish_save")
        self.saved_value = saved
        self.last_error = None
        if self._dirty_during_save:
            self.state = AutosaveState.EDITING
        else:
            self.state = AutosaveState.IDLE
        self._dirty_during_save = False

    def fail_save(self, error: str) -> None:
        """Back to ``editing`` so the next tick retries."""
        self._guard("fail_save")
        self.last_error = error
        self.state = AutosaveState.EDITING
        self._dirty_during_save = False
        logger.warning("autosave_failed", entity_id=self.entity_id, error=error)

    def tick(self) -> Any | None:
        """Start a save when the debounce has elapsed; returns the snapshot or ``None``."""
        if self.save_due():
            return self.begin_save()
        return None

    def can_accept_sync(self) -> bool:
        if self.state is not AutosaveState.IDLE:
            return False
        if self.last_edit_at is None:
            return True
        return self.clock() - self.last_edit_at >= self.sync_grace_seconds

    def apply_sync(self, value: Any) -> bool:
        """Adopt a server snapshot unless local edits are in flight."""
        if not self.can_accept_sync():
            logger.debug("autosave_sync_rejected", entity_id=self.entity_id, state=self.state.value)
            return False
        self.value = value
        self.saved_value = value
        return True
