"""TOC decryption for protected PSARC archives.

Protected archives encrypt everything between the header and the first data
block with AES-256 in CFB mode (128-bit segments). The key and IV are fixed
values shared by all such archives; both can be overridden through
``OpenOptions`` in case other key material turns up.

CFB has no integrity check, so the plaintext is sanity-checked against the
header before it is handed to the TOC parser.
"""

import logging

from Crypto.Cipher import AES

from .errors import TocDecryptionFailedError
from .header import PSARCHeader
from .toc import block_count, iter_records, records_size

logger = logging.getLogger(__name__)

DEFAULT_TOC_KEY = bytes.fromhex(
    "C53DB23870A1A2F71CAE64061FDD0E1157309DC85204D4C5BFDF25090DF2572C"
)
DEFAULT_TOC_IV = bytes.fromhex("E915AA018FEF71FC508132E4BB4CEB42")


def pad_to_block(data: bytes, block_size: int = AES.block_size) -> bytes:
    """Zero-pad ``data`` to a multiple of ``block_size``."""
    remainder = len(data) % block_size
    if remainder:
        data += b"\x00" * (block_size - remainder)
    return data


def decrypt_toc(
    ciphertext: bytes,
    header: PSARCHeader,
    key: bytes = DEFAULT_TOC_KEY,
    iv: bytes = DEFAULT_TOC_IV,
) -> bytes:
    """Decrypt the TOC body and check that the result is plausible."""
    try:
        cipher = AES.new(key, AES.MODE_CFB, iv=iv, segment_size=128)
    except ValueError as e:
        raise TocDecryptionFailedError(f"Invalid TOC key or IV: {e}") from e

    toc = cipher.decrypt(pad_to_block(ciphertext))[: len(ciphertext)]
    check_toc_plaintext(toc, header)
    logger.debug("Decrypted %d TOC bytes", len(toc))
    return toc


def check_toc_plaintext(toc: bytes, header: PSARCHeader) -> None:
    """Raise TocDecryptionFailedError unless the records agree with the header.

    Every record must reference cells inside the block table and point its
    data past the header/TOC region. Random bytes fail this on the first
    non-empty record with overwhelming probability.
    """
    needed = records_size(header)
    if needed > len(toc):
        raise TocDecryptionFailedError(
            f"TOC records need {needed} bytes "
            f"({header.toc_entry_count} x {header.toc_entry_size}), TOC has {len(toc)}"
        )

    cells = (len(toc) - needed) // header.block_table_width
    for index, (_, block_index, length, offset) in enumerate(iter_records(toc, header)):
        if not length:
            continue
        blocks = block_count(length, header.block_size)
        if block_index + blocks > cells:
            raise TocDecryptionFailedError(
                f"Decrypted entry {index} needs blocks up to "
                f"{block_index + blocks}, block table has {cells}; wrong key?"
            )
        if offset < header.toc_length:
            raise TocDecryptionFailedError(
                f"Decrypted entry {index} has data offset {offset} inside the "
                f"{header.toc_length}-byte header/TOC region; wrong key?"
            )
