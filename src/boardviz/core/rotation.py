"""Interpolation and rotation math used by the visual state engine."""

from boardviz.models import RotationConfig

VALUE_MAX = 127


def lerp(start: float, end: float, t: float) -> float:
    """Linear interpolation between `start` and `end`."""
    return start + (end - start) * t


def normalize_angle(angle: float) -> float:
    """Wrap an angle into [0, 360)."""
    wrapped = angle % 360.0
    # Tiny negative inputs round up to exactly 360.0
    return 0.0 if wrapped >= 360.0 else wrapped


def absolute_angle(value: int, rotation: RotationConfig) -> float:
    """
    Angle for an absolute control value.

    value 0 maps to angle_min, value 127 to angle_max, both shifted by
    angle_offset and normalized.
    """
    angle = lerp(rotation.angle_min, rotation.angle_max, value / VALUE_MAX)
    return normalize_angle(angle + rotation.angle_offset)


def clamp_step(previous: int, value: int, max_step: int) -> int:
    """
    Raw delta between two successive values, clamped to +/- max_step.

    Clamping keeps a wrap of the source value (127 -> 0) from turning into
    a near full-range jump.
    """
    delta = value - previous
    return max(-max_step, min(max_step, delta))


def accumulate_angle(
    accumulated: float, previous: int | None, value: int, rotation: RotationConfig
) -> float:
    """
    New accumulated angle after seeing `value`.

    The first value for a target (previous is None) only primes the raw
    value and leaves the angle where it is.
    """
    if previous is None:
        return accumulated
    step = clamp_step(previous, value, rotation.max_step)
    return accumulated + step * rotation.degrees_per_step
