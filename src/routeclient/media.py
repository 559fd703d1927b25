"""Media types and the codec registry.

A :class:`Codec` is the encode/decode capability pair for one media type. A
:class:`CodecRegistry` holds the codecs available to a client and answers the
two selection questions the derivation engine asks:

* :meth:`CodecRegistry.select_encoder` -- the first declared request media
  type that has a codec.
* :meth:`CodecRegistry.select_decoders` -- every declared response media type
  that has a codec, in declared order.

Selection is always first-match in the order the API description lists the
media types; nothing is negotiated with the server.

:func:`default_registry` ships codecs for JSON (via pydantic), plain text,
raw bytes and form-urlencoded bodies.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence
from urllib.parse import parse_qsl, urlencode

from pydantic import BaseModel

from routeclient.exceptions import EncodingUnavailableError, InvalidContentTypeHeaderError
from routeclient.rendering import type_adapter, to_url_piece

JSON = "application/json"
PLAIN_TEXT = "text/plain"
OCTET_STREAM = "application/octet-stream"
FORM_URLENCODED = "application/x-www-form-urlencoded"


# ---------------------------------------------------------------------------
# Media types
# ---------------------------------------------------------------------------

# RFC 7230 token characters.
_TOKEN = r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+"
_MEDIA_TYPE_RE = re.compile(rf"^\s*({_TOKEN})/({_TOKEN})\s*$")
_PARAM_RE = re.compile(rf'^\s*({_TOKEN})\s*=\s*("(?:[^"\\]|\\.)*"|{_TOKEN})\s*$')


@dataclass(frozen=True)
class MediaType:
    """A parsed ``type/subtype`` with optional parameters.

    Type, subtype and parameter names are lower-cased.
    """

    type: str
    subtype: str
    params: tuple[tuple[str, str], ...] = ()

    @property
    def essence(self) -> str:
        """``type/subtype`` without parameters."""
        return f"{self.type}/{self.subtype}"

    def matches(self, other: MediaType) -> bool:
        """Return ``True`` when the two types are compatible.

        A ``*`` on either side matches any type or subtype. Parameters are
        ignored.
        """
        type_ok = "*" in (self.type, other.type) or self.type == other.type
        subtype_ok = "*" in (self.subtype, other.subtype) or self.subtype == other.subtype
        return type_ok and subtype_ok

    def __str__(self) -> str:
        rendered = self.essence
        for name, value in self.params:
            rendered += f";{name}={value}"
        return rendered


def parse_media_type(text: str) -> MediaType:
    """Parse a ``Content-Type`` style value such as ``text/plain; charset=utf-8``.

    Raises:
        InvalidContentTypeHeaderError: If *text* is not a well-formed media type.
    """
    head, *raw_params = text.split(";")
    match = _MEDIA_TYPE_RE.match(head)
    if match is None:
        raise InvalidContentTypeHeaderError(text)

    params: list[tuple[str, str]] = []
    for raw in raw_params:
        if not raw.strip():
            continue
        param = _PARAM_RE.match(raw)
        if param is None:
            raise InvalidContentTypeHeaderError(text)
        value = param.group(2)
        if value.startswith('"'):
            value = value[1:-1].replace('\\"', '"')
        params.append((param.group(1).lower(), value))

    return MediaType(match.group(1).lower(), match.group(2).lower(), tuple(params))


# ---------------------------------------------------------------------------
# Codecs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Codec:
    """Encode/decode capability pair for one media type.

    Attributes:
        content_type: The value sent as ``Content-Type`` when encoding.
        encode: ``(value, declared_type) -> bytes``. ``None`` when the codec
            can only decode.
        decode: ``(raw_bytes, declared_type) -> value``; raises on malformed
            input. ``None`` when the codec can only encode.
    """

    content_type: str
    encode: Optional[Callable[[Any, Any], bytes]] = None
    decode: Optional[Callable[[bytes, Any], Any]] = None
    media_type: MediaType = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "media_type", parse_media_type(self.content_type))


def _json_encode(value: Any, tp: Any) -> bytes:
    return type_adapter(tp).dump_json(value)


def _json_decode(raw: bytes, tp: Any) -> Any:
    return type_adapter(tp).validate_json(raw)


def _text_encode(value: Any, tp: Any) -> bytes:
    return to_url_piece(value).encode("utf-8")


def _text_decode(raw: bytes, tp: Any) -> Any:
    text = raw.decode("utf-8")
    if tp is str or tp is Any:
        return text
    return type_adapter(tp).validate_python(text)


def _bytes_encode(value: Any, tp: Any) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    raise TypeError(f"{OCTET_STREAM} bodies must be bytes, got {type(value).__name__}")


def _bytes_decode(raw: bytes, tp: Any) -> Any:
    return raw


def _form_encode(value: Any, tp: Any) -> bytes:
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json", exclude_none=True)
    if not isinstance(value, Mapping):
        raise TypeError(f"{FORM_URLENCODED} bodies must be mappings, got {type(value).__name__}")
    pairs = {
        key: [to_url_piece(v) for v in item] if isinstance(item, (list, tuple)) else to_url_piece(item)
        for key, item in value.items()
    }
    return urlencode(pairs, doseq=True).encode("ascii")


def _form_decode(raw: bytes, tp: Any) -> Any:
    fields = dict(parse_qsl(raw.decode("ascii"), keep_blank_values=True, strict_parsing=bool(raw)))
    if tp is Any or tp is dict:
        return fields
    return type_adapter(tp).validate_python(fields)


JSON_CODEC = Codec("application/json", _json_encode, _json_decode)
TEXT_CODEC = Codec("text/plain;charset=utf-8", _text_encode, _text_decode)
BYTES_CODEC = Codec(OCTET_STREAM, _bytes_encode, _bytes_decode)
FORM_CODEC = Codec(FORM_URLENCODED, _form_encode, _form_decode)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class CodecRegistry:
    """Immutable mapping from media type essence to :class:`Codec`.

    Registries are read-only once built; :meth:`with_codec` and
    :meth:`without` return new registries.

    Example::

        registry = CodecRegistry([JSON_CODEC])
        registry.select_encoder(["application/xml", "application/json"])
        # -> JSON_CODEC
    """

    def __init__(self, codecs: Iterable[Codec] = ()) -> None:
        self._codecs: dict[str, Codec] = {}
        for codec in codecs:
            self._codecs[codec.media_type.essence] = codec

    def __contains__(self, media_type: str) -> bool:
        return self.get(media_type) is not None

    def __repr__(self) -> str:
        return f"CodecRegistry({sorted(self._codecs)!r})"

    @property
    def media_types(self) -> list[str]:
        """Registered media type essences, in registration order."""
        return list(self._codecs)

    def get(self, media_type: str) -> Optional[Codec]:
        """Return the codec registered for *media_type* (parameters ignored).

        A declared media type that does not parse has no codec.
        """
        try:
            essence = parse_media_type(media_type).essence
        except InvalidContentTypeHeaderError:
            return None
        return self._codecs.get(essence)

    def with_codec(self, codec: Codec) -> CodecRegistry:
        """Return a new registry with *codec* added (replacing any previous one)."""
        return CodecRegistry([*self._codecs.values(), codec])

    def without(self, media_type: str) -> CodecRegistry:
        """Return a new registry without the codec for *media_type*."""
        essence = parse_media_type(media_type).essence
        return CodecRegistry(c for key, c in self._codecs.items() if key != essence)

    def select_encoder(self, media_types: Sequence[str]) -> Codec:
        """Return the codec of the first declared media type that can encode.

        Raises:
            EncodingUnavailableError: If no declared media type has an encoder.
        """
        for media_type in media_types:
            codec = self.get(media_type)
            if codec is not None and codec.encode is not None:
                return codec
        raise EncodingUnavailableError(media_types)

    def select_decoders(self, media_types: Sequence[str]) -> list[tuple[MediaType, Codec]]:
        """Return ``(declared media type, codec)`` for every decodable declared type.

        Order follows *media_types*; types without a decoder are skipped.
        """
        selected: list[tuple[MediaType, Codec]] = []
        for media_type in media_types:
            codec = self.get(media_type)
            if codec is not None and codec.decode is not None:
                selected.append((parse_media_type(media_type), codec))
        return selected


def default_registry() -> CodecRegistry:
    """Registry with the JSON, plain text, octet-stream and form codecs."""
    return CodecRegistry([JSON_CODEC, TEXT_CODEC, BYTES_CODEC, FORM_CODEC])
