"""Input events fed to the tool state machine.

Buttons, modifiers and keys use the Qt enums so a Qt view can forward its
events through the ``*_from_qt`` adapters unchanged. The plain dataclasses keep
the editor core usable (and testable) without a running ``QApplication``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple

from PySide6.QtCore import Qt

NO_MODIFIER = Qt.KeyboardModifier.NoModifier

_MODIFIER_NAMES = {
    "alt": Qt.KeyboardModifier.AltModifier,
    "shift": Qt.KeyboardModifier.ShiftModifier,
    "ctrl": Qt.KeyboardModifier.ControlModifier,
    "control": Qt.KeyboardModifier.ControlModifier,
    "meta": Qt.KeyboardModifier.MetaModifier,
}

_BUTTON_NAMES = {
    "left": Qt.MouseButton.LeftButton,
    "right": Qt.MouseButton.RightButton,
    "middle": Qt.MouseButton.MiddleButton,
}


@dataclass(frozen=True)
class PointerEvent:
    x: float
    y: float
    button: Qt.MouseButton = Qt.MouseButton.LeftButton
    modifiers: Qt.KeyboardModifier = NO_MODIFIER

    @property
    def pos(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def has(self, modifier: Qt.KeyboardModifier) -> bool:
        return bool(self.modifiers & modifier)


@dataclass(frozen=True)
class WheelEvent:
    delta_y: float
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class KeyEvent:
    key: Qt.Key
    modifiers: Qt.KeyboardModifier = NO_MODIFIER


def modifiers_from_names(names: Iterable[str]) -> Qt.KeyboardModifier:
    """Combine names such as ``["ctrl", "shift"]`` into a modifier flag."""
    result = NO_MODIFIER
    for name in names:
        try:
            result = result | _MODIFIER_NAMES[name.lower()]
        except KeyError as exc:
            raise ValueError(f"Unknown modifier '{name}'") from exc
    return result


def button_from_name(name: str) -> Qt.MouseButton:
    try:
        return _BUTTON_NAMES[name.lower()]
    except KeyError as exc:
        raise ValueError(f"Unknown mouse button '{name}'") from exc


def key_from_name(name: str) -> Qt.Key:
    """Map ``"Escape"``/``"Delete"``/``"A"`` style names to ``Qt.Key`` members."""
    key = getattr(Qt.Key, f"Key_{name}", None)
    if key is None:
        raise ValueError(f"Unknown key '{name}'")
    return key


# ---------------------------------------------------------------------------
# Qt adapters (duck-typed so tests can pass simple stand-ins)


def pointer_event_from_qt(event) -> PointerEvent:
    pos = event.position()
    return PointerEvent(x=float(pos.x()), y=float(pos.y()), button=event.button(), modifiers=event.modifiers())


def wheel_event_from_qt(event) -> WheelEvent:
    pos = event.position()
    return WheelEvent(delta_y=float(event.angleDelta().y()), x=float(pos.x()), y=float(pos.y()))


def key_event_from_qt(event) -> KeyEvent:
    key = event.key()
    if not isinstance(key, Qt.Key):
        key = Qt.Key(key)
    return KeyEvent(key=key, modifiers=event.modifiers())


__all__ = [
    "NO_MODIFIER",
    "PointerEvent",
    "WheelEvent",
    "KeyEvent",
    "modifiers_from_names",
    "button_from_name",
    "key_from_name",
    "pointer_event_from_qt",
    "wheel_event_from_qt",
    "key_event_from_qt",
]
