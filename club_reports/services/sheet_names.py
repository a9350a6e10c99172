"""Unique worksheet names for one workbook export."""

import logging
import re
from typing import Iterable, Iterator, Optional

from club_reports.core.exceptions import SheetNameError

logger = logging.getLogger(__name__)

MAX_SHEET_NAME_LENGTH = 31
BASE_NAME_LENGTH = 28
SUFFIX_ATTEMPTS = 4
FALLBACK_ID_LENGTH = 8

FORBIDDEN_CHARS = re.compile(r"[\\/?*\[\]:]")

SUMMARY_SHEET = "Tổng Quan"
ACTIVITY_LIST_SHEET = "Danh Sách Hoạt Động"
FIXED_SHEETS = (SUMMARY_SHEET, ACTIVITY_LIST_SHEET)


def sanitize_sheet_name(label: Optional[str], limit: int = BASE_NAME_LENGTH) -> str:
    """Drop characters spreadsheet applications reject and cap the length."""
    cleaned = FORBIDDEN_CHARS.sub("", label or "").strip(" '")
    return cleaned[:limit].strip(" '")


def is_valid_sheet_name(name: str) -> bool:
    return (
        0 < len(name) <= MAX_SHEET_NAME_LENGTH
        and not FORBIDDEN_CHARS.search(name)
        and not name.startswith("'")
        and not name.endswith("'")
    )


def fallback_token(activity_id: Optional[str], index: int) -> str:
    """First characters of the activity id, or its 1-based position."""
    token = sanitize_sheet_name(activity_id, FALLBACK_ID_LENGTH)
    return token or str(index)


class SheetNameAllocator:
    """Hands out worksheet names that are valid and unique within one export.

    Names are compared case-insensitively. A name is reserved before it is
    returned, so it can never be handed out twice.
    """

    def __init__(self, reserved: Iterable[str] = FIXED_SHEETS):
        self._used: set[str] = set()
        self.names: list[str] = []
        for name in reserved:
            self.reserve(name)

    def __contains__(self, name: str) -> bool:
        return name.casefold() in self._used

    def __len__(self) -> int:
        return len(self._used)

    def reserve(self, name: str) -> str:
        if name in self:
            raise SheetNameError(f"Sheet name '{name}' is already used")
        self._used.add(name.casefold())
        self.names.append(name)
        return name

    def _candidates(self, base: str, token: str, index: int) -> Iterator[str]:
        yield base
        for attempt in range(1, SUFFIX_ATTEMPTS + 1):
            suffix = f" ({attempt})"
            yield base[: MAX_SHEET_NAME_LENGTH - len(suffix)] + suffix
        yield f"{base[: max(1, 20 - len(token))]}_{token}"[:MAX_SHEET_NAME_LENGTH]
        yield token
        yield from self._positional(index)

    def _positional(self, index: int) -> Iterator[str]:
        yield f"A{index}"
        # One of these is free: there are fewer used names than candidates
        for k in range(1, len(self._used) + 2):
            yield f"A{index}_{k}"

    def allocate(self, label: Optional[str], fallback_id: Optional[str] = None, index: int = 1) -> str:
        """Reserve and return a unique name derived from ``label``.

        ``fallback_id`` is the activity id and ``index`` its 1-based position
        in the export; both feed the fallbacks used after repeated collisions.
        """
        token = fallback_token(fallback_id, index)
        base = sanitize_sheet_name(label) or token

        for candidate in self._candidates(base, token, index):
            if is_valid_sheet_name(candidate) and candidate not in self:
                if candidate != base:
                    logger.debug(f"Sheet name '{base}' taken, using '{candidate}'")
                return self.reserve(candidate)

        raise SheetNameError(f"No free sheet name for '{label}'")

    def allocate_positional(self, index: int) -> str:
        """Reserve a purely positional name (``A<index>``, then ``A<index>_<k>``)."""
        for candidate in self._positional(index):
            if candidate not in self:
                return self.reserve(candidate)
        raise SheetNameError(f"No free positional sheet name for index {index}")
