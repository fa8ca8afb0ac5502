# Clisage CLI Builder — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Key names and terminal byte sequences.

prompt_toolkit reports keys by name (`"up"`, `"c-m"`, `"s-tab"`) or as the typed
character. `normalize_key` maps the aliased control names to the names the
controller reasons about (`"enter"`, `"tab"`, `"backspace"`, `"backtab"`).

`encode_key` goes the other way for a running child process: it turns a key into
the bytes an xterm-compatible terminal would send.
"""
from __future__ import annotations

KEY_ALIASES = {
    "c-m": "enter",
    "c-j": "enter",
    "c-i": "tab",
    "c-h": "backspace",
    "s-tab": "backtab",
}

_SPECIAL_KEYS = {
    "enter": b"\r",
    "c-m": b"\r",
    "c-j": b"\n",
    "tab": b"\t",
    "c-i": b"\t",
    "backspace": b"\x7f",
    "c-h": b"\x7f",
    "backtab": b"\x1b[Z",
    "s-tab": b"\x1b[Z",
    "escape": b"\x1b",
    "up": b"\x1b[A",
    "down": b"\x1b[B",
    "right": b"\x1b[C",
    "left": b"\x1b[D",
    "home": b"\x1b[H",
    "end": b"\x1b[F",
    "insert": b"\x1b[2~",
    "delete": b"\x1b[3~",
    "pageup": b"\x1b[5~",
    "pagedown": b"\x1b[6~",
    "f1": b"\x1bOP",
    "f2": b"\x1bOQ",
    "f3": b"\x1bOR",
    "f4": b"\x1bOS",
    "f5": b"\x1b[15~",
    "f6": b"\x1b[17~",
    "f7": b"\x1b[18~",
    "f8": b"\x1b[19~",
    "f9": b"\x1b[20~",
    "f10": b"\x1b[21~",
    "f11": b"\x1b[23~",
    "f12": b"\x1b[24~",
    "c-@": b"\x00",
    "c-\\": b"\x1c",
    "c-]": b"\x1d",
    "c-^": b"\x1e",
    "c-_": b"\x1f",
}

# xterm modifier parameter: 2 = shift, 5 = ctrl, 6 = ctrl+shift
_MODIFIERS = {"s-": 2, "c-": 5, "c-s-": 6}
_CURSOR_FINALS = {
    "up": "A",
    "down": "B",
    "right": "C",
    "left": "D",
    "home": "H",
    "end": "F",
}


def normalize_key(key: str) -> str:
    return KEY_ALIASES.get(key, key)


def is_printable(key: str) -> bool:
    return len(key) == 1 and key.isprintable()


def encode_key(key: str, data: str = "") -> bytes | None:
    """
    Bytes a terminal sends for `key`, or None for keys with no terminal encoding
    (mouse events, cursor position reports, ...).

    `data` is the text prompt_toolkit attached to the key press; it is used for
    pasted text and for keys it reports as `<any>`.
    """
    if key == "<bracketed-paste>" or key == "<any>":
        return data.encode("utf-8") if data else None
    if len(key) == 1:
        return key.encode("utf-8")
    if key in _SPECIAL_KEYS:
        return _SPECIAL_KEYS[key]
    if key.startswith("c-") and len(key) == 3 and key[2].isalpha():
        return bytes([ord(key[2].lower()) - ord("a") + 1])
    for prefix, modifier in sorted(_MODIFIERS.items(), key=lambda item: -len(item[0])):
        name = key[len(prefix) :]
        if key.startswith(prefix) and name in _CURSOR_FINALS:
            return f"\x1b[1;{modifier}{_CURSOR_FINALS[name]}".encode("ascii")
    return None
