"""
Content fingerprint for derived cache validation.
"""

import struct


def content_fingerprint(text: str) -> str:
    """Rolling 32-bit hash of ``text`` as a signed decimal string.

    Computes ``h = h * 31 + unit`` over the UTF-16 code units of the text,
    wrapped to 32 bits. The result is stable across processes and hosts,
    so it can be compared against fingerprints written by other instances.
    Distinct texts may collide.
    """
    data = text.encode("utf-16-le", "surrogatepass")
    value = 0
    for (unit,) in struct.iter_unpack("<H", data):
        value = (value * 31 + unit) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return str(value)
