from __future__ import annotations
from dataclasses import dataclass

@dataclass
class Block:
    """One contiguous range [base, base+length). Only MemorySpace mutates it."""
    base: int
    length: int

    def get_base(self) -> int:
        return self.base

    def get_length(self) -> int:
        return self.length

    def set_base(self, v: int):
        self.base = v

    def set_length(self, v: int):
        self.length = v

    def end(self) -> int:
        return self.base + self.length

    def __str__(self) -> str:
        return f"({self.base} , {self.length})"
