"""Modified UTF-8 codec used by class file constant pools.

Differs from standard UTF-8 in two ways: U+0000 is encoded as ``C0 80`` and
supplementary characters are encoded as two three-byte surrogates.
"""

from __future__ import annotations


def decode(data: bytes) -> str:
    if data.isascii() and b"\x00" not in data:
        return data.decode("ascii")

    units: list[int] = []
    i = 0
    length = len(data)
    while i < length:
        byte = data[i]
        if byte < 0x80:
            units.append(byte)
            i += 1
        elif byte & 0xE0 == 0xC0 and i + 1 < length:
            units.append(((byte & 0x1F) << 6) | (data[i + 1] & 0x3F))
            i += 2
        elif byte & 0xF0 == 0xE0 and i + 2 < length:
            units.append(
                ((byte & 0x0F) << 12)
                | ((data[i + 1] & 0x3F) << 6)
                | (data[i + 2] & 0x3F)
            )
            i += 3
        else:
            msg = f"malformed modified UTF-8 at offset {i}"
            raise ValueError(msg)

    raw = b"".join(unit.to_bytes(2, "big") for unit in units)
    return raw.decode("utf-16-be", "surrogatepass")


def encode(value: str) -> bytes:
    if value.isascii() and "\x00" not in value:
        return value.encode("ascii")

    raw = value.encode("utf-16-be", "surrogatepass")
    out = bytearray()
    for i in range(0, len(raw), 2):
        unit = (raw[i] << 8) | raw[i + 1]
        if 0 < unit < 0x80:
            out.append(unit)
        elif unit < 0x800:
            out.append(0xC0 | (unit >> 6))
            out.append(0x80 | (unit & 0x3F))
        else:
            out.append(0xE0 | (unit >> 12))
            out.append(0x80 | ((unit >> 6) & 0x3F))
            out.append(0x80 | (unit & 0x3F))
    return bytes(out)


__all__ = ["decode", "encode"]
