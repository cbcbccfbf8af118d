"""
Canonical event decoding.

Every transport ends up here before its events reach the pipeline:

::

    MIDI port  --mido.Message-->  decode_message --+
    raw bytes  ------------------> decode_bytes  --+--> CanonicalEvent | None
    stream     --JSON payload---> decode_payload --+

All decoders are pure functions. Anything they cannot interpret (clock,
sysex, program change, short or malformed messages) yields None. That is
a filtered message, not an error.
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any

import mido
from pydantic import ValidationError

from boardviz.models import CanonicalEvent, EventKind
from boardviz.models.event import PITCH_BEND_CENTER

logger = logging.getLogger(__name__)

# Status nibble -> event kind
STATUS_KINDS = {
    0x8: EventKind.NOTE_OFF,
    0x9: EventKind.NOTE_ON,
    0xB: EventKind.CONTROL_CHANGE,
    0xE: EventKind.PITCH_BEND,
}


def decode_bytes(data: Sequence[int] | bytes) -> CanonicalEvent | None:
    """
    Decode a 2-3 byte status/data message.

    The high nibble of the status byte selects the kind, the low nibble + 1
    is the channel. Note-on with velocity 0 is reported as note-off and
    pitch bend is re-centered around zero.

    Args:
        data: Status byte followed by one or two data bytes

    Returns:
        CanonicalEvent, or None if the message is not one we visualize

    Example:
        >>> decode_bytes([0x90, 60, 100])
        CanonicalEvent(kind=<EventKind.NOTE_ON: 'noteon'>, channel=1, code=60, value=100)
    """
    if len(data) < 3:
        logger.debug(f"Dropping short message: {list(data)}")
        return None

    status, d1, d2 = data[0], data[1], data[2]
    if not 0x80 <= status <= 0xEF:
        logger.debug(f"Dropping non-channel message with status {status:#04x}")
        return None

    kind = STATUS_KINDS.get(status >> 4)
    if kind is None:
        return None

    channel = (status & 0x0F) + 1
    d1 &= 0x7F
    d2 &= 0x7F

    if kind is EventKind.PITCH_BEND:
        return CanonicalEvent(kind=kind, channel=channel, value=((d2 << 7) | d1) - PITCH_BEND_CENTER)
    return CanonicalEvent(kind=kind, channel=channel, code=d1, value=d2)


def decode_message(msg: mido.Message) -> CanonicalEvent | None:
    """
    Decode a mido message (as delivered by a MIDI input port).

    Clock and other system messages are filtered out.
    """
    if msg.is_meta or msg.type in ("clock", "sysex", "active_sensing"):
        return None
    return decode_bytes(msg.bytes())


def decode_payload(payload: Mapping[str, Any]) -> CanonicalEvent | None:
    """
    Coerce an already-normalized payload ({type, ch, d1, d2, controller?, value}).

    Used for events forwarded by a stream transport. No byte decoding
    happens here, only field coercion and validation.

    Returns:
        CanonicalEvent, or None if the payload is malformed
    """
    if not isinstance(payload, Mapping):
        logger.debug(f"Dropping non-object payload: {payload!r}")
        return None
    try:
        return CanonicalEvent.model_validate(dict(payload))
    except ValidationError as e:
        logger.debug(f"Dropping invalid payload {dict(payload)!r}: {e.error_count()} error(s)")
        return None
