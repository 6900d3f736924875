from __future__ import annotations
from typing import Tuple

from ..errors import InvalidIdentifier
from ..models import Source


def encode_id(source: Source | str, native_id: object) -> str:
    """
    Builds the composite identifier "<source>:<nativeId>".

    Native IDs may contain colons themselves (URIs); decoding splits on the first
    colon only, so they survive the round trip.
    """
    src = source if isinstance(source, Source) else Source.parse(str(source))
    native = str(native_id) if native_id is not None else ""
    if not native.strip():
        raise InvalidIdentifier("Native identifier must not be empty", source=src.value)
    return f"{src.value}:{native}"


def decode_id(composite_id: str) -> Tuple[Source, str]:
    """
    Splits a composite identifier back into (source, nativeId).

    Raises:
        InvalidIdentifier: no colon, unknown source, or empty native part.
    """
    if not isinstance(composite_id, str) or ":" not in composite_id:
        raise InvalidIdentifier(
            f"Artwork ID {composite_id!r} should look like 'source:objectId' (e.g. 'met:12345')"
        )
    prefix, native = composite_id.split(":", 1)
    try:
        source = Source.parse(prefix)
    except ValueError:
        raise InvalidIdentifier(f"Unknown source {prefix!r}; expected one of met, rijks, va") from None
    if not native.strip():
        raise InvalidIdentifier(f"Artwork ID {composite_id!r} has no object part", source=source.value)
    return source, native
