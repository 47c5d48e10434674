"""
Reversible byte <-> printable character alphabet used by byte-level BPE.

Every byte value maps to one printable unicode character so that merge rules
and vocabulary entries can be stored as text. Printable latin-1 bytes map to
themselves; the rest are shifted above 255.
"""

from functools import cache


@cache
def byte_encoder() -> dict[int, str]:
    """Return the byte value -> symbol table."""
    printable = (
        list(range(ord("!"), ord("~") + 1))
        + list(range(ord("¡"), ord("¬") + 1))
        + list(range(ord("®"), ord("ÿ") + 1))
    )
    chars = printable[:]
    shift = 0
    for b in range(256):
        if b not in printable:
            printable.append(b)
            chars.append(256 + shift)
            shift += 1
    return {b: chr(c) for b, c in zip(printable, chars)}


@cache
def byte_decoder() -> dict[str, int]:
    """Return the symbol -> byte value table."""
    return {c: b for b, c in byte_encoder().items()}


def to_symbols(chunk: str) -> list[str]:
    """Encode ``chunk`` as UTF-8 and map each byte to its symbol."""
    enc = byte_encoder()
    return [enc[b] for b in chunk.encode("utf-8")]


def to_bytes(token: str) -> bytes:
    """
    Map a byte-level token back to raw bytes.

    Characters outside the alphabet are kept as their own UTF-8 bytes.
    """
    dec = byte_decoder()
    out = bytearray()
    for c in token:
        b = dec.get(c)
        if b is None:
            out.extend(c.encode("utf-8"))
        else:
            out.append(b)
    return bytes(out)
