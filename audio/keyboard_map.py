"""Computer-keyboard note layout: two octaves from C4 to F5."""
from typing import Dict, List, Optional, Tuple

# key -> (note name, frequency in Hz, "white" | "black")
KEYBOARD_NOTES: Dict[str, Tuple[str, float, str]] = {
    "a": ("C4", 261.63, "white"),
    "w": ("C#4", 277.18, "black"),
    "s": ("D4", 293.66, "white"),
    "e": ("D#4", 311.13, "black"),
    "d": ("E4", 329.63, "white"),
    "f": ("F4", 349.23, "white"),
    "t": ("F#4", 369.99, "black"),
    "g": ("G4", 392.00, "white"),
    "y": ("G#4", 415.30, "black"),
    "h": ("A4", 440.00, "white"),
    "u": ("A#4", 466.16, "black"),
    "j": ("B4", 493.88, "white"),
    "k": ("C5", 523.25, "white"),
    # Next octave
    "o": ("C#5", 554.37, "black"),
    "l": ("D5", 587.33, "white"),
    "p": ("D#5", 622.25, "black"),
    "semicolon": ("E5", 659.25, "white"),
    "apostrophe": ("F5", 698.46, "white"),
}

# Printable labels for keys whose Textual names are words
KEY_LABELS = {"semicolon": ";", "apostrophe": "'"}

ALL_KEYS: List[str] = list(KEYBOARD_NOTES)
WHITE_KEYS: List[str] = [k for k, (_, _, kind) in KEYBOARD_NOTES.items() if kind == "white"]
BLACK_KEYS: List[str] = [k for k, (_, _, kind) in KEYBOARD_NOTES.items() if kind == "black"]


def frequency_for_key(key: str) -> Optional[float]:
    note = KEYBOARD_NOTES.get(key)
    return note[1] if note else None


def note_name_for_key(key: str) -> Optional[str]:
    note = KEYBOARD_NOTES.get(key)
    return note[0] if note else None


def white_index(key: str) -> int:
    """Number of white keys before ``key`` in layout order."""
    count = 0
    for code in ALL_KEYS:
        if code == key:
            return count
        if KEYBOARD_NOTES[code][2] == "white":
            count += 1
    return 0


def key_label(key: str) -> str:
    return KEY_LABELS.get(key, key.upper())
