"""Entry names from the archive manifest.

Entry 0 of every archive is a manifest: the paths of entries 1..N-1, one per
line, in TOC order. The manifest itself has no name.
"""

import logging
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Sequence

from .errors import PSARCFormatError
from .toc import PSARCEntry

logger = logging.getLogger(__name__)


@dataclass
class PSARCManifest:
    """Manifest containing filenames for all entries."""

    filenames: List[str]

    @classmethod
    def from_data(cls, data: bytes) -> "PSARCManifest":
        """Parse manifest from raw data (newline-separated paths).

        Raises UnicodeDecodeError if the data is not UTF-8 text.
        """
        text = data.decode("utf-8-sig")
        # Split by newlines, trim \r and padding, drop empty lines
        filenames = [line.strip() for line in text.split("\n")]
        return cls(filenames=[name for name in filenames if name])


def resolve_names(
    entries: Sequence[PSARCEntry], read_entry: Callable[[PSARCEntry], bytes]
) -> List[PSARCEntry]:
    """Return ``entries`` with names assigned from the manifest.

    An unreadable manifest is not fatal: the entries come back unnamed and
    stay addressable by index.
    """
    if not entries:
        logger.warning("Archive has no manifest entry; entries are index-only")
        return list(entries)

    try:
        manifest = PSARCManifest.from_data(read_entry(entries[0]))
    except (PSARCFormatError, UnicodeDecodeError) as e:
        logger.warning("Could not read the manifest; entries are index-only: %s", e)
        return list(entries)

    filenames = manifest.filenames
    if len(filenames) != len(entries) - 1:
        logger.warning(
            "Manifest lists %d names for %d entries", len(filenames), len(entries) - 1
        )
    logger.debug("Manifest lists %d names", len(filenames))

    named = [entries[0]]
    for entry in entries[1:]:
        position = entry.index - 1
        name = filenames[position] if position < len(filenames) else None
        named.append(replace(entry, name=name))
    return named


def normalize_name(name: str, ignore_case: bool = False) -> str:
    """Key used to look entries up by name."""
    name = name.lstrip("/")
    return name.casefold() if ignore_case else name


def build_name_index(entries: Sequence[PSARCEntry], ignore_case: bool = False) -> Dict[str, int]:
    """Map normalized names to entry indices; the first duplicate wins."""
    index: Dict[str, int] = {}
    for entry in entries:
        if entry.name:
            index.setdefault(normalize_name(entry.name, ignore_case), entry.index)
    return index
