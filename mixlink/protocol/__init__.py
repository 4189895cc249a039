"""Protocol layer for the slider/button controller line format."""

from .fields import classify_field, split_fields, is_plausible, parse_slider_levels
from .framer import FrameBuffer, LineFramer
from .validator import ProtocolValidator, EndpointBlacklist, is_plausible_line
from .demux import ButtonStateTracker, FieldDemultiplexer
from .engine import ProtocolEngine

__all__ = [
    "classify_field",
    "split_fields",
    "is_plausible",
    "parse_slider_levels",
    "FrameBuffer",
    "LineFramer",
    "ProtocolValidator",
    "EndpointBlacklist",
    "is_plausible_line",
    "ButtonStateTracker",
    "FieldDemultiplexer",
    "ProtocolEngine",
]
