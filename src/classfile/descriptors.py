"""Field and method descriptor helpers."""

from __future__ import annotations

from contract.errors import ClassFormatError

_PRIMITIVES = frozenset("BCDFIJSZ")
_WIDE = frozenset("JD")


def _scan_type(descriptor: str, offset: int) -> int:
    """Return the offset just past the field type starting at ``offset``."""
    start = offset
    while offset < len(descriptor) and descriptor[offset] == "[":
        offset += 1
    if offset >= len(descriptor):
        msg = f"truncated descriptor {descriptor!r}"
        raise ClassFormatError(msg)
    char = descriptor[offset]
    if char in _PRIMITIVES:
        return offset + 1
    if char == "L":
        end = descriptor.find(";", offset)
        if end < 0:
            msg = f"unterminated class type in descriptor {descriptor!r}"
            raise ClassFormatError(msg)
        return end + 1
    msg = f"invalid type {descriptor[start:offset + 1]!r} in descriptor {descriptor!r}"
    raise ClassFormatError(msg)


def argument_types(descriptor: str) -> list[str]:
    """Split a method descriptor into its argument type descriptors.

    Examples:
        >>> argument_types("(I[Ljava/lang/String;J)V")
        ['I', '[Ljava/lang/String;', 'J']
    """
    if not descriptor.startswith("("):
        msg = f"not a method descriptor: {descriptor!r}"
        raise ClassFormatError(msg)
    types = []
    offset = 1
    while offset < len(descriptor) and descriptor[offset] != ")":
        end = _scan_type(descriptor, offset)
        types.append(descriptor[offset:end])
        offset = end
    if offset >= len(descriptor):
        msg = f"unterminated argument list in {descriptor!r}"
        raise ClassFormatError(msg)
    return types


def return_type(descriptor: str) -> str:
    return descriptor[descriptor.index(")") + 1 :]


def slot_size(type_descriptor: str) -> int:
    """Local variable slots taken by a value of the given type."""
    return 2 if type_descriptor in _WIDE else 1


def argument_slots(descriptor: str, *, static: bool) -> list[int]:
    """Local variable index of each argument of a method."""
    slots = []
    index = 0 if static else 1
    for argument in argument_types(descriptor):
        slots.append(index)
        index += slot_size(argument)
    return slots


def type_to_internal_name(type_descriptor: str) -> str | None:
    """Internal name of an object type descriptor, None for other types."""
    if type_descriptor.startswith("L") and type_descriptor.endswith(";"):
        return type_descriptor[1:-1]
    return None


__all__ = [
    "argument_slots",
    "argument_types",
    "return_type",
    "slot_size",
    "type_to_internal_name",
]
