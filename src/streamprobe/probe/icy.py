# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
ICY (Shoutcast/Icecast) header and in-band metadata parsing.

Protocol summary:
- the client sends ``Icy-MetaData: 1``;
- the server answers with ``icy-metaint: N``;
- after every N audio bytes the server inserts one length byte L followed by
  L*16 bytes of NUL-padded text such as ``StreamTitle='Artist - Song';``.

Everything here is pure and tolerant: unknown or contradictory headers leave
fields unset instead of failing.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from ..http.headers import first_header, has_header_prefix
from ..models.stream import AudioFormat, ServerInfo, ServerSoftware, StreamExtras, StreamMetadata

ICY_METADATA_REQUEST_HEADER = "Icy-MetaData"
METAINT_HEADER = "icy-metaint"
METADATA_BLOCK_UNIT = 16

HEADER_ALIASES: dict[str, tuple[str, ...]] = {
    "bitrate": ("icy-br", "x-audiocast-bitrate", "ice-bitrate"),
    "genre": ("icy-genre", "x-audiocast-genre", "ice-genre"),
    "url": ("icy-url", "x-audiocast-url", "ice-url"),
    "station_name": ("icy-name", "x-audiocast-name", "ice-name"),
    "description": ("icy-description", "x-audiocast-description", "ice-description"),
    "sample_rate": ("ice-samplerate", "icy-sr", "icy-samplerate"),
    "channels": ("ice-channels", "icy-channels"),
}
AUDIO_INFO_HEADERS = ("ice-audio-info", "icy-audio-info")
AUDIO_INFO_KEYS = {
    "bitrate": "bitrate",
    "samplerate": "sample_rate",
    "channels": "channels",
}
ICECAST_HEADER_PREFIXES = ("ice-", "x-audiocast-")
SHOUTCAST_NOTICE_HEADERS = ("icy-notice1", "icy-notice2")

_INT_RE = re.compile(r"^\s*(\d+)")
_VERSION_RE = re.compile(r"v?(\d+(?:\.\d+)*)", re.IGNORECASE)
_FIELD_RE = re.compile(r"""([A-Za-z][\w-]*)\s*=\s*(['"])(.*?)\2\s*(?:;|$)""", re.DOTALL)

_FORMAT_PATTERNS: tuple[tuple[AudioFormat, tuple[str, ...]], ...] = (
    (AudioFormat.MP3, ("audio/mpeg", "audio/mp3", "audio/x-mpeg", "audio/mpeg3")),
    (AudioFormat.AAC, ("audio/aac", "audio/aacp", "audio/x-aac", "audio/mp4", "audio/x-m4a")),
    (AudioFormat.OGG, ("audio/ogg", "application/ogg", "audio/opus", "audio/vorbis")),
    (AudioFormat.FLAC, ("audio/flac", "audio/x-flac")),
)


def parse_int(value: str | None) -> int | None:
    """Leading integer of a header value (``"128,128"`` -> 128), or None."""
    if not value:
        return None
    match = _INT_RE.match(value)
    return int(match.group(1)) if match else None


def parse_metaint(value: str | None) -> int | None:
    interval = parse_int(value)
    if interval is None or interval <= 0:
        return None
    return interval


def decode_metadata_block(block: bytes) -> str:
    """Decode a metadata frame: strip NUL padding, prefer UTF-8, fall back to Latin-1."""
    stripped = block.rstrip(b"\x00")
    try:
        text = stripped.decode("utf-8")
    except UnicodeDecodeError:
        text = stripped.decode("latin-1")
    return text.strip()


def parse_icy_metadata(text: str) -> dict[str, str]:
    """
    Parse ``key='value';`` pairs from a metadata frame.

    Values may contain apostrophes (``StreamTitle='Don't Stop';``) because a
    value only ends at a quote followed by ``;`` or the end of the frame.
    """
    fields: dict[str, str] = {}
    if not text:
        return fields
    for match in _FIELD_RE.finditer(text):
        key = match.group(1)
        if key not in fields:
            fields[key] = match.group(3)
    if fields:
        return fields

    # Some encoders drop the quotes entirely.
    for part in text.split(";"):
        if "=" not in part:
            continue
        key, value = part.split("=", 1)
        key = key.strip()
        if key and key not in fields:
            fields[key] = value.strip()
    return fields


def parse_audio_info(value: str | None) -> dict[str, int]:
    """Parse ``ice-audio-info`` style values such as ``bitrate=128;samplerate=44100;channels=2``."""
    info: dict[str, int] = {}
    if not value:
        return info
    for part in re.split(r"[;&]", value):
        if "=" not in part:
            continue
        key, raw = part.split("=", 1)
        key = key.strip().lower()
        for prefix in ("ice-", "icy-"):
            if key.startswith(prefix):
                key = key[len(prefix):]
        target = AUDIO_INFO_KEYS.get(key)
        number = parse_int(raw)
        if target and number is not None and target not in info:
            info[target] = number
    return info


def parse_audio_format(content_type: str | None) -> AudioFormat | None:
    """Map a MIME type to an AudioFormat; unknown types map to None."""
    if not content_type:
        return None
    lowered = content_type.lower()
    for audio_format, patterns in _FORMAT_PATTERNS:
        if any(pattern in lowered for pattern in patterns):
            return audio_format
    return None


def extract_version(server_header: str | None) -> str | None:
    if not server_header:
        return None
    match = _VERSION_RE.search(server_header)
    return match.group(1) if match else None


def detect_server_info(headers: Mapping[str, str]) -> ServerInfo | None:
    """
    Identify the stream server software.

    The ``server`` header wins. Without it, software is inferred only from
    unambiguous evidence: a SHOUTcast notice, or Icecast-only header families.
    """
    description = first_header(headers, HEADER_ALIASES["description"]) or first_header(headers, HEADER_ALIASES["station_name"])
    server = (headers.get("server") or "").strip()

    if server:
        lowered = server.lower()
        if "shoutcast" in lowered:
            software: str | None = ServerSoftware.SHOUTCAST.value
        elif "icecast" in lowered:
            software = ServerSoftware.ICECAST.value
        else:
            software = server.split("/", 1)[0].strip() or None
        return ServerInfo(software=software, version=extract_version(server), description=description)

    notice = " ".join(headers.get(name, "") for name in SHOUTCAST_NOTICE_HEADERS)
    shoutcast_hint = "shoutcast" in notice.lower()
    icecast_hint = has_header_prefix(headers, ICECAST_HEADER_PREFIXES)

    software = None
    version = None
    if shoutcast_hint and not icecast_hint:
        software = ServerSoftware.SHOUTCAST.value
        version = extract_version(notice.lower().split("shoutcast", 1)[1])
    elif icecast_hint and not shoutcast_hint:
        software = ServerSoftware.ICECAST.value

    info = ServerInfo(software=software, version=version, description=description)
    return None if info.is_empty() else info


def build_stream_metadata(headers: Mapping[str, str], fields: Mapping[str, str] | None = None) -> StreamMetadata:
    """Combine normalized response headers and parsed in-band fields into StreamMetadata."""
    fields = fields or {}
    audio_info = parse_audio_info(first_header(headers, AUDIO_INFO_HEADERS))

    bitrate = parse_int(first_header(headers, HEADER_ALIASES["bitrate"]))
    if bitrate is None:
        bitrate = audio_info.get("bitrate")

    sample_rate = parse_int(first_header(headers, HEADER_ALIASES["sample_rate"]))
    if sample_rate is None:
        sample_rate = audio_info.get("sample_rate")

    channels = parse_int(first_header(headers, HEADER_ALIASES["channels"]))
    if channels is None:
        channels = audio_info.get("channels")

    content_type = headers.get("content-type") or None
    stream_url = (fields.get("StreamUrl") or "").strip() or None

    extra = StreamExtras(
        genre=first_header(headers, HEADER_ALIASES["genre"]),
        url=stream_url or first_header(headers, HEADER_ALIASES["url"]),
        content_type=content_type,
        sample_rate=sample_rate,
        channels=channels,
        station_name=first_header(headers, HEADER_ALIASES["station_name"]),
        description=first_header(headers, HEADER_ALIASES["description"]),
    )

    title = (fields.get("StreamTitle") or "").strip() or None
    return StreamMetadata(
        stream_title=title,
        bitrate=bitrate,
        audio_format=parse_audio_format(content_type),
        server_info=detect_server_info(headers),
        extra=None if extra.is_empty() else extra,
    )


__all__ = [
    "HEADER_ALIASES",
    "ICY_METADATA_REQUEST_HEADER",
    "METADATA_BLOCK_UNIT",
    "METAINT_HEADER",
    "build_stream_metadata",
    "decode_metadata_block",
    "detect_server_info",
    "extract_version",
    "parse_audio_format",
    "parse_audio_info",
    "parse_icy_metadata",
    "parse_int",
    "parse_metaint",
]
