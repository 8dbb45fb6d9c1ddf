"""
Compression utilities for jarstore.

zstd via the zstandard library; compressed frames are carried as base64 text
because physical records are text.
"""

import base64
import binascii

import zstandard as zstd

from jarstore.core.errors import CompressionError


def compress_data(data: bytes, level: int = 3) -> bytes:
    """
    Compress data using zstd.

    Args:
        data: Data to compress
        level: Compression level (1-22, default 3)

    Returns:
        Compressed data
    """
    cctx = zstd.ZstdCompressor(level=level)
    return cctx.compress(data)


def decompress_data(compressed_data: bytes) -> bytes:
    """
    Decompress data using zstd.

    Args:
        compressed_data: Compressed data

    Returns:
        Decompressed data

    Raises:
        zstandard.ZstdError: If the input is not a valid zstd frame
    """
    dctx = zstd.ZstdDecompressor()
    return dctx.decompress(compressed_data)


def compress_text(text: str, level: int = 3) -> str:
    """
    Compress text into its base64 record form.

    Raises:
        CompressionError: On any encoding or compression failure
    """
    try:
        compressed = compress_data(text.encode("utf-8"), level=level)
        return base64.b64encode(compressed).decode("ascii")
    except (zstd.ZstdError, UnicodeError, TypeError, AttributeError) as exc:
        raise CompressionError("compress") from exc


def decompress_text(record: str) -> str:
    """
    Inverse of compress_text.

    Raises:
        CompressionError: If the record is not base64, not a zstd frame,
            or does not decode to UTF-8
    """
    if not record:
        raise CompressionError("decompress")
    try:
        compressed = base64.b64decode(record.encode("ascii"), validate=True)
        return decompress_data(compressed).decode("utf-8")
    except (zstd.ZstdError, binascii.Error, UnicodeError, TypeError, AttributeError) as exc:
        raise CompressionError("decompress") from exc
