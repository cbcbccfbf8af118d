"""Visual state engine: animates diagram targets from resolved events."""

import logging
import threading
from dataclasses import dataclass

from boardviz.models import (
    AnimationCategory,
    Axis,
    CanonicalEvent,
    EventKind,
    MappingEntry,
    RotationMode,
)
from boardviz.render import RenderSurface

from .rotation import absolute_angle, accumulate_angle, lerp, normalize_angle
from .scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

DEFAULT_PULSE_MS = 120.0


@dataclass
class VisualElementState:
    """Current visual state of one diagram target."""

    lit: bool = False
    position: float | None = None
    axis: Axis | None = None
    rotation_angle: float = 0.0
    accumulated_angle: float = 0.0
    last_raw_value: int | None = None
    pulse_timer: TimerHandle | None = None


class VisualStateEngine:
    """
    Applies resolved events to per-target visual state and the render surface.

    State is created lazily the first time an event addresses a target that
    exists on the surface, and belongs to this engine instance only.

    Rules:
    - NoteOn lights the target and (re)starts a pulse timer that clears it
    - NoteOff clears the target and cancels any pending pulse
    - ControlChange animates per the entry's category (lit / slide / rotate)
    - PitchBend has no visual effect

    Pulse timers come from the injected scheduler, so a virtual scheduler
    makes pulse reversion deterministic.
    """

    def __init__(
        self,
        surface: RenderSurface,
        scheduler: Scheduler,
        pulse_ms: float = DEFAULT_PULSE_MS,
    ):
        self._surface = surface
        self._scheduler = scheduler
        self._pulse_ms = pulse_ms
        self._states: dict[str, VisualElementState] = {}
        self._lock = threading.RLock()

    @property
    def surface(self) -> RenderSurface:
        return self._surface

    def apply(self, event: CanonicalEvent, entry: MappingEntry) -> VisualElementState | None:
        """
        Apply an event to the target named by its mapping entry.

        Returns:
            The target's updated state, or None if the event had no effect
        """
        target = entry.target_id
        if event.kind is EventKind.PITCH_BEND:
            logger.debug(f"Pitch bend on ch {event.channel} has no visual effect")
            return None
        if not self._surface.has_element(target):
            logger.debug(f"Target '{target}' not found on diagram, ignoring {event.key}")
            return None

        with self._lock:
            state = self._states.setdefault(target, VisualElementState())
            if event.kind is EventKind.NOTE_ON:
                self._note_on(target, state)
            elif event.kind is EventKind.NOTE_OFF:
                self._note_off(target, state)
            else:
                self._control_change(target, state, event.value, entry)
            return state

    # =================================================================
    # Rules
    # =================================================================

    def _note_on(self, target: str, state: VisualElementState) -> None:
        self._set_lit(target, state, True)
        if state.pulse_timer is not None:
            state.pulse_timer.cancel()

        handle: TimerHandle | None = None

        def revert() -> None:
            with self._lock:
                # A newer note-on replaced this timer
                if state.pulse_timer is not handle:
                    return
                state.pulse_timer = None
                self._set_lit(target, state, False)

        handle = self._scheduler.call_later(self._pulse_ms, revert)
        state.pulse_timer = handle

    def _note_off(self, target: str, state: VisualElementState) -> None:
        self._cancel_pulse(state)
        self._set_lit(target, state, False)

    def _control_change(
        self, target: str, state: VisualElementState, value: int, entry: MappingEntry
    ) -> None:
        animation = entry.animation
        if animation.category is AnimationCategory.SLIDE:
            position = lerp(animation.range_min, animation.range_max, value / 127)
            state.position = position
            state.axis = animation.axis
            self._surface.set_position(target, animation.axis, position)
        elif animation.category is AnimationCategory.ROTATE:
            self._rotate(target, state, value, entry)
        self._set_lit(target, state, True)

    def _rotate(self, target: str, state: VisualElementState, value: int, entry: MappingEntry) -> None:
        rotation = entry.animation.rotation
        if rotation.mode is RotationMode.ACCUMULATE:
            primed = state.last_raw_value is not None
            state.accumulated_angle = accumulate_angle(
                state.accumulated_angle, state.last_raw_value, value, rotation
            )
            state.last_raw_value = value
            if not primed:
                return
            angle = normalize_angle(state.accumulated_angle + rotation.angle_offset)
        else:
            state.last_raw_value = value
            angle = absolute_angle(value, rotation)

        state.rotation_angle = angle
        center = self._rotation_center(entry)
        if center is None:
            logger.debug(f"No rotation center for '{target}', angle stored only")
            return
        self._surface.set_rotation(target, angle, center)

    def _rotation_center(self, entry: MappingEntry) -> tuple[float, float] | None:
        override = entry.animation.rotation.center
        if override is not None:
            return override
        center = self._surface.circle_center(entry.target_id)
        if center is not None:
            return center
        pointer = entry.animation.pointer
        if pointer:
            center = self._surface.bbox_center(pointer)
            if center is not None:
                return center
            logger.debug(f"Pointer '{pointer}' not found, using '{entry.target_id}' box center")
        return self._surface.bbox_center(entry.target_id)

    def _set_lit(self, target: str, state: VisualElementState, lit: bool) -> None:
        state.lit = lit
        self._surface.set_lit(target, lit)

    @staticmethod
    def _cancel_pulse(state: VisualElementState) -> None:
        if state.pulse_timer is not None:
            state.pulse_timer.cancel()
            state.pulse_timer = None

    # =================================================================
    # Inspection
    # =================================================================

    def state_for(self, target_id: str) -> VisualElementState | None:
        """State of a target, or None if no event has reached it yet."""
        with self._lock:
            return self._states.get(target_id)

    @property
    def targets(self) -> list[str]:
        """Targets that have state, in first-touched order."""
        with self._lock:
            return list(self._states)

    def snapshot(self) -> dict[str, dict]:
        """Plain-data view of all target states (timers omitted)."""
        with self._lock:
            return {
                target: {
                    "lit": state.lit,
                    "position": state.position,
                    "axis": state.axis.value if state.axis else None,
                    "rotation_angle": state.rotation_angle,
                    "accumulated_angle": state.accumulated_angle,
                    "last_raw_value": state.last_raw_value,
                    "pulse_pending": state.pulse_timer is not None,
                }
                for target, state in self._states.items()
            }

    def close(self) -> None:
        """Cancel all pending pulse timers."""
        with self._lock:
            for state in self._states.values():
                self._cancel_pulse(state)
        logger.debug("Visual state engine closed")
