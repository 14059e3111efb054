# core/selection.py
from typing import List, Tuple

from .errors import ValidationError
from .models import Candidate


def parse_selection(raw: str, candidates: List[Candidate]) -> Tuple[Candidate, int]:
    """
    Parse an "{index}:{count}" selection against the listed candidates.
    Returns the chosen candidate and how many copies to add.
    """
    parts = raw.strip().split(":")
    if len(parts) != 2:
        raise ValidationError("Incorrect Selection Format! Use INDEX:COUNT, e.g. 0:1")

    try:
        index = int(parts[0].strip())
    except ValueError:
        raise ValidationError("Incorrect Selection Format!")
    try:
        count = int(parts[1].strip())
    except ValueError:
        raise ValidationError("Incorrect Count Format!")

    if count < 1:
        raise ValidationError("Count must be at least 1!")

    for candidate in candidates:
        if candidate.index == index:
            return candidate, count
    raise ValidationError(f"No listed card with index {index}!")


def parse_position(raw: str, size: int) -> int:
    """Parse a collection position, which must be within 0..size-1."""
    try:
        position = int(raw.strip())
    except ValueError:
        raise ValidationError("Selection must be a number!")
    if position < 0 or position >= size:
        raise ValidationError(f"Selection {position} is out of range!")
    return position
