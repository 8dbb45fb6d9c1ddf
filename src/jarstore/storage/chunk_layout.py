"""
Chunk layout planning.

Pure functions that decide how a compressed payload maps onto physical
records of bounded size.
"""

from typing import List

from jarstore.core.contracts import Config
from jarstore.core.errors import EntryTooLargeError


class ChunkLayout:
    """
    Splits payloads and derives physical keys for one Config.

    Key layout:
    - metadata: <meta_prefix><key>
    - chunk i:  <chunk_prefix><key>_<i>
    """

    def __init__(self, config: Config):
        self.config = config

    def split(self, payload: str) -> List[str]:
        """
        Split payload into ordered pieces of at most chunk_size.

        Args:
            payload: Text to split

        Returns:
            Pieces in order; empty list for an empty payload
        """
        size = self.config.chunk_size
        return [payload[i : i + size] for i in range(0, len(payload), size)]

    def chunk_key(self, base_key: str, index: int) -> str:
        """Physical key of chunk `index` for `base_key`."""
        return f"{self.config.chunk_prefix}{base_key}_{index}"

    def meta_key(self, base_key: str) -> str:
        """Physical key of the metadata record for `base_key`."""
        return f"{self.config.meta_prefix}{base_key}"

    def is_reserved(self, key: str) -> bool:
        return key.startswith(self.config.key_prefix)

    def safe_chunk_size(self, base_key: str) -> int:
        """
        Largest payload that fits one record alongside the longest chunk key.

        The index bound is fixed (not the real chunk count) so the layout
        decision never depends on how many chunks end up being written.
        """
        longest_key = self.chunk_key(base_key, self.config.max_chunk_index)
        return self.config.max_record_size - len(longest_key)

    def validate_record(self, key: str, value: str):
        """
        Check a physical (key, value) pair against the record ceiling.

        Raises:
            EntryTooLargeError: If len(key) + len(value) > max_record_size
        """
        entry_size = len(key) + len(value)
        if entry_size > self.config.max_record_size:
            raise EntryTooLargeError(entry_size, self.config.max_record_size)
