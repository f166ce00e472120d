"""Payload encoding and decoding functions."""

ENCODING = 'utf-8'


def encode_payload(text: str) -> bytes:
    """
    Encode payload text for transmission.

    An empty or None payload encodes to no bytes.
    """
    return (text or '').encode(ENCODING)


def decode_payload(data: bytes) -> str:
    """
    Decode payload bytes received from the server.

    Servers occasionally emit truncated multi-byte sequences at packet
    edges, so invalid bytes become replacement characters instead of
    failing the whole response.
    """
    return bytes(data).decode(ENCODING, errors='replace')
