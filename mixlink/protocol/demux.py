"""Splitting validated lines into slider data and button edges."""
from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from ..models import (
    FIELD_DELIMITER,
    ButtonStateChanged,
    FieldKind,
    LayoutConfig,
)
from .fields import classify_field

logger = logging.getLogger(__name__)


class ButtonStateTracker:
    """Converts level-style button fields into press events.

    Only released -> pressed transitions produce an event; releases update
    the stored level silently.
    """

    def __init__(self, button_count: int = 0):
        self._states: List[bool] = [False] * button_count

    def update(self, index: int, pressed: bool) -> Optional[ButtonStateChanged]:
        """Record the level of one button.

        Returns:
            ButtonStateChanged on a press edge, None otherwise
        """
        if index < 0 or index >= len(self._states):
            return None

        previous = self._states[index]
        if previous == pressed:
            return None

        self._states[index] = pressed
        if pressed:
            logger.debug(f"Button {index} pressed")
            return ButtonStateChanged(index=index, is_pressed=True)
        return None

    def reset(self, button_count: Optional[int] = None) -> None:
        """Forget all levels, optionally resizing."""
        count = len(self._states) if button_count is None else button_count
        self._states = [False] * count

    @property
    def states(self) -> Tuple[bool, ...]:
        return tuple(self._states)


class FieldDemultiplexer:
    """Separates slider fields from button fields using a LayoutConfig.

    Lines without button data (or with no buttons configured) pass through
    unchanged, so older firmware keeps working.
    """

    def __init__(self, layout: Optional[LayoutConfig] = None):
        self._layout = layout or LayoutConfig()
        self._buttons = ButtonStateTracker(self._layout.button_count)

    def configure(self, layout: LayoutConfig) -> None:
        """Apply a new layout. Button states start over as released."""
        self._layout = layout
        self._buttons.reset(layout.button_count)
        logger.debug(
            f"Layout configured: {layout.slider_count} sliders, {layout.button_count} buttons"
        )

    def process(self, line: str) -> Tuple[str, List[ButtonStateChanged]]:
        """Split a validated line.

        Args:
            line: Trimmed, validated device line

        Returns:
            (slider_line, press_events). The slider line keeps the mute
            sentinel untouched.

        Example:
            >>> demux = FieldDemultiplexer(LayoutConfig(3, 2))
            >>> demux.process("512|768|400|10000|10001")
            ('512|768|400', [ButtonStateChanged(index=1, is_pressed=True)])
        """
        slider_count = self._layout.slider_count
        button_count = self._layout.button_count
        parts = line.split(FIELD_DELIMITER)

        if button_count == 0 or len(parts) <= slider_count:
            return line, []

        slider_line = FIELD_DELIMITER.join(parts[:slider_count])
        events = []
        for index, token in enumerate(parts[slider_count:slider_count + button_count]):
            pressed = classify_field(token).kind == FieldKind.BUTTON_PRESSED
            event = self._buttons.update(index, pressed)
            if event is not None:
                events.append(event)

        return slider_line, events

    @property
    def layout(self) -> LayoutConfig:
        return self._layout

    @property
    def button_states(self) -> Tuple[bool, ...]:
        return self._buttons.states
