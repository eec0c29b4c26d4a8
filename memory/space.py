from __future__ import annotations
import logging
from typing import List, Optional, Tuple

from memory.block import Block

logger = logging.getLogger(__name__)

class MemorySpace:
    """First-fit allocator over [0, max_size).

    Keeps two ordered lists: allocated blocks in allocation order, and free
    blocks in whatever order allocation and defrag have left them. Nothing is
    coalesced until defrag() is called explicitly.
    """
    def __init__(self, max_size: int):
        if not isinstance(max_size, int) or isinstance(max_size, bool) or max_size <= 0:
            raise ValueError(f"max_size must be a positive int, got {max_size!r}")
        self.max_size = max_size
        self._allocated: List[Block] = []
        self._free: List[Block] = [Block(0, max_size)]

    @property
    def allocated(self) -> List[Tuple[int,int]]:
        return [(b.get_base(), b.get_length()) for b in self._allocated]

    @property
    def free_blocks(self) -> List[Tuple[int,int]]:
        return [(b.get_base(), b.get_length()) for b in self._free]

    def used(self) -> int:
        return sum(b.get_length() for b in self._allocated)

    def free_words(self) -> int:
        return sum(b.get_length() for b in self._free)

    def largest_free(self) -> int:
        return max((b.get_length() for b in self._free), default=0)

    def block_at(self, address: int) -> Optional[int]:
        for b in self._allocated:
            if b.get_base() == address:
                return b.get_length()
        return None

    def malloc(self, length: int) -> int:
        """Allocate `length` words; return the base address or -1."""
        if not self._free or length <= 0:
            return -1
        for i, blk in enumerate(self._free):
            if blk.get_length() < length:
                continue
            base = blk.get_base()
            if blk.get_length() == length:
                del self._free[i]
                self._allocated.append(blk)
                logger.debug("malloc(%d): exact fit at %d", length, base)
                return base
            # split: the free block stays at position i with its front cut off
            blk.set_base(base + length)
            blk.set_length(blk.get_length() - length)
            self._allocated.append(Block(base, length))
            logger.debug("malloc(%d): split at %d, remainder %s", length, base, blk)
            return base
        logger.debug("malloc(%d): no free block large enough (largest=%d)",
                     length, self.largest_free())
        return -1

    def free(self, address: int):
        """Move the allocated block based at `address` to the end of the free list.

        Raises ValueError when nothing is allocated. An address that matches
        no allocated block is ignored.
        """
        if not self._allocated:
            raise ValueError(f"cannot free {address}: nothing allocated")
        for i, blk in enumerate(self._allocated):
            if blk.get_base() == address:
                del self._allocated[i]
                self._free.append(blk)
                logger.debug("free(%d): released %s", address, blk)
                return
        logger.debug("free(%d): no allocated block at address, ignored", address)

    def defrag(self):
        """Sort the free list by address and merge contiguous neighbours."""
        if len(self._free) <= 1:
            return
        self._free.sort(key=lambda b: b.get_base())
        i=0
        while i + 1 < len(self._free):
            cur, nxt = self._free[i], self._free[i+1]
            if cur.end() == nxt.get_base():
                cur.set_length(cur.get_length() + nxt.get_length())
                del self._free[i+1]
                logger.debug("defrag: merged into %s", cur)
                continue
            i += 1

    def describe(self) -> str:
        free_line = ' '.join(str(b) for b in self._free)
        alloc_line = ' '.join(str(b) for b in self._allocated)
        return f"{free_line}\n{alloc_line}"

    def __str__(self) -> str:
        return self.describe()
