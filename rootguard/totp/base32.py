"""
Base32 codec for TOTP secrets (RFC 4648 alphabet, no padding).

Decoding is lenient: it accepts lower case, ignores spaces and hyphens
and skips any other symbol outside the alphabet, so secrets typed in by
hand still decode.
"""
import secrets

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
_LOOKUP = {ch: i for i, ch in enumerate(ALPHABET)}

SECRET_BYTES = 20  # 160 bits


def encode(data: bytes) -> str:
    """Encode bytes as unpadded Base32, most significant bit first."""
    if not data:
        return ""
    out: list[str] = []
    value = 0
    bits = 0
    for byte in data:
        value = ((value << 8) | byte) & 0xFFFF
        bits += 8
        while bits >= 5:
            out.append(ALPHABET[(value >> (bits - 5)) & 0x1F])
            bits -= 5
    if bits:
        out.append(ALPHABET[(value << (5 - bits)) & 0x1F])
    return "".join(out)


def decode(text: str | None) -> bytes:
    """Decode Base32 text; invalid symbols are skipped, never an error."""
    if not text:
        return b""
    out = bytearray()
    value = 0
    bits = 0
    for ch in text.upper():
        idx = _LOOKUP.get(ch)
        if idx is None:
            continue
        value = ((value << 5) | idx) & 0xFFFF
        bits += 5
        if bits >= 8:
            out.append((value >> (bits - 8)) & 0xFF)
            bits -= 8
    return bytes(out)


def random_secret(length: int = SECRET_BYTES) -> str:
    """Generate a random secret of ``length`` bytes, Base32 encoded."""
    return encode(secrets.token_bytes(length))
