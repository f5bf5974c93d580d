"""Settings used when opening an archive."""

from dataclasses import dataclass

from .cipher import DEFAULT_TOC_IV, DEFAULT_TOC_KEY
from .header import ARCHIVE_FLAG_TOC_ENCRYPTED


@dataclass(frozen=True)
class OpenOptions:
    """Options for ``PSARCArchive``.

    The key and IV default to the values every protected archive seen so far
    uses. Override them to try other key material without touching the
    parser.
    """

    decryption_key: bytes = DEFAULT_TOC_KEY
    decryption_iv: bytes = DEFAULT_TOC_IV
    # Archive flag bit that marks an encrypted TOC
    encrypted_flag: int = ARCHIVE_FLAG_TOC_ENCRYPTED
    # Memory-map path sources so reads need no lock
    memory_map: bool = False
    # Require the entries to use every block table cell
    strict_block_table: bool = True
    resolve_names: bool = True
