"""Big-endian readers and writers for class file structures."""

from __future__ import annotations

import struct

from contract.errors import ClassFormatError

_U2 = struct.Struct(">H")
_U4 = struct.Struct(">I")


class ByteReader:
    def __init__(self, data: bytes, offset: int = 0) -> None:
        self.data = data
        self.offset = offset

    def _take(self, size: int) -> bytes:
        end = self.offset + size
        if end > len(self.data):
            msg = f"unexpected end of data at offset {self.offset} (need {size} bytes)"
            raise ClassFormatError(msg)
        chunk = self.data[self.offset : end]
        self.offset = end
        return chunk

    def u1(self) -> int:
        return self._take(1)[0]

    def u2(self) -> int:
        return _U2.unpack(self._take(2))[0]

    def u4(self) -> int:
        return _U4.unpack(self._take(4))[0]

    def raw(self, size: int) -> bytes:
        return self._take(size)

    def remaining(self) -> int:
        return len(self.data) - self.offset


class ByteWriter:
    def __init__(self) -> None:
        self.buffer = bytearray()

    def u1(self, value: int) -> None:
        self.buffer.append(value)

    def u2(self, value: int) -> None:
        self.buffer += _U2.pack(value)

    def u4(self, value: int) -> None:
        self.buffer += _U4.pack(value)

    def raw(self, data: bytes) -> None:
        self.buffer += data

    def getvalue(self) -> bytes:
        return bytes(self.buffer)


__all__ = ["ByteReader", "ByteWriter"]
