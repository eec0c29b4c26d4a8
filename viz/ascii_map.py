from __future__ import annotations
import string
from memory.space import MemorySpace

def render_map(space: MemorySpace, width: int=80) -> str:
    cap=space.max_size
    buf=['.']*width
    for i,(base,length) in enumerate(space.allocated):
        s=int((base/cap)*width)
        e=int(((base+length)/cap)*width)
        ch=string.ascii_uppercase[i % 26]
        for j in range(max(0,s), min(width, max(s+1,e))):
            buf[j]=ch
    return ''.join(buf)
