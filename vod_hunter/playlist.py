import asyncio
import logging
import os
import re
from dataclasses import dataclass
from urllib.parse import urlparse

import aiohttp
import m3u8

from .errors import InvalidURLError, NetworkError, PlaylistFormatError, UnsupportedHostError


log = logging.getLogger(__name__)

SUPPORTED_HOSTS = ("twitch.tv", "cloudfront.net")
MUTED_SUFFIX = "-muted.ts"
# len("-unmuted.ts") and len(".ts")
UNMUTED_SUFFIX_LENGTH = 11
TS_SUFFIX_LENGTH = 3


@dataclass(frozen=True)
class PlaylistSegment:
    uri: str
    duration: float
    muted_hint: bool


@dataclass(frozen=True)
class PlaylistLocation:
    url: str
    base_url: str
    name: str


def is_supported_host(host):
    host = (host or "").lower()
    return any(host == supported or host.endswith(f".{supported}") for supported in SUPPORTED_HOSTS)


def locate_playlist(url):
    """Check the playlist URL and work out where its segments live.

    Runs before any request is made.
    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise InvalidURLError(url, f"not a playlist URL: {url}")
    if not is_supported_host(parsed.hostname):
        raise UnsupportedHostError(url)

    segments = [segment for segment in parsed.path.split("/") if segment]
    if len(segments) < 2:
        raise InvalidURLError(url, f"not a VOD playlist URL: {url}")

    base_url = f"{parsed.scheme}://{parsed.netloc}/{'/'.join(segments[:-1])}/"
    return PlaylistLocation(url, base_url, segments[0])


def default_output_path(location):
    return os.path.join(os.getcwd(), f"muted_{location.name}.m3u8")


def ensure_absolute_uri(uri: str, base_link: str) -> str:
    uri = uri.strip()
    if uri.startswith("http://") or uri.startswith("https://"):
        return uri
    return f"{base_link}{uri}"


def muted_uri(url, remove_chars=UNMUTED_SUFFIX_LENGTH):
    return f"{url[:len(url) - remove_chars]}{MUTED_SUFFIX}"


def natural_key(text):
    return [int(part) if part.isdigit() else part for part in re.split(r"(\d+)", text)]


async def fetch_playlist(session, url):
    try:
        async with session.get(url) as response:
            if response.status != 200:
                raise NetworkError(url, f"status code {response.status}")
            return await response.text()
    except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
        raise NetworkError(url, e) from e


def parse_media_playlist(body, url):
    if not body or not body.lstrip().startswith("#EXTM3U"):
        raise PlaylistFormatError(url, "missing the #EXTM3U header")
    try:
        playlist = m3u8.loads(body, uri=url)
    except (m3u8.ParseError, ValueError) as e:
        raise PlaylistFormatError(url, str(e)) from e
    if playlist.is_variant:
        raise PlaylistFormatError(url, "expected a media playlist, got a master playlist")

    segments = [
        PlaylistSegment(segment.uri, segment.duration, "unmuted" in segment.uri)
        for segment in playlist.segments
    ]
    return playlist, segments


def resolve_by_pattern(segments, base_url):
    """Rewrite ``*-unmuted.ts`` segments to their ``-muted.ts`` twin, keep the rest."""
    resolved = []
    for segment in segments:
        url = ensure_absolute_uri(segment.uri, base_url)
        if segment.muted_hint:
            url = muted_uri(url)
            log.debug("Found the muted version of this .ts file - %s", url)
        else:
            log.debug("Found the unmuted version of this .ts file - %s", url)
        resolved.append((url, segment.duration))
    return resolved


async def resolve_by_status(engine, segments, base_url):
    """Ask the server which variant of every segment is playable.

    A 403 means the fetched file is the unplayable one and its ``-muted.ts``
    twin is used instead. The resolved URLs are put in natural order and paired
    with the original durations by position.
    """
    urls = [ensure_absolute_uri(segment.uri, base_url) for segment in segments]
    statuses = await engine.statuses(urls)

    resolved = []
    for url, status in zip(urls, statuses):
        if status == 403:
            remove_chars = UNMUTED_SUFFIX_LENGTH if "unmuted" in url else TS_SUFFIX_LENGTH
            url = muted_uri(url, remove_chars)
            log.debug("Found the muted version of this .ts file - %s", url)
        elif status == 200:
            log.debug("Found the unmuted version of this .ts file - %s", url)
        else:
            log.warning("Couldn't check this .ts file (status %s), keeping it as is - %s", status, url)
        resolved.append(url)

    # assumes natural order of the final names matches the playlist order
    resolved.sort(key=natural_key)
    return [(url, segment.duration) for url, segment in zip(resolved, segments)]


def build_playlist(source, resolved):
    playlist = m3u8.M3U8()
    playlist.version = source.version
    playlist.target_duration = source.target_duration
    playlist.media_sequence = source.media_sequence
    playlist.discontinuity_sequence = source.discontinuity_sequence
    playlist.is_endlist = source.is_endlist
    playlist.playlist_type = source.playlist_type
    for uri, duration in resolved:
        playlist.segments.append(m3u8.Segment(uri=uri, duration=duration))
    return playlist


async def is_video_muted(session, url):
    return "unmuted" in await fetch_playlist(session, url)


async def fix(engine, url, output=None, slow=False):
    """Download ``url`` and write a playable playlist with muted segments swapped in.

    Returns the path of the written file. Nothing is written unless every
    segment has been resolved.
    """
    location = locate_playlist(url)
    body = await fetch_playlist(engine.session, url)
    source, segments = parse_media_playlist(body, url)

    if slow:
        resolved = await resolve_by_status(engine, segments, location.base_url)
    else:
        resolved = resolve_by_pattern(segments, location.base_url)

    playlist = build_playlist(source, resolved)
    path = output or default_output_path(location)
    with open(path, "w", encoding="utf-8") as playlist_file:
        playlist_file.write(playlist.dumps())

    muted_count = sum(1 for uri, _ in resolved if uri.endswith(MUTED_SUFFIX))
    log.info("Wrote %d segments (%d muted) to %s", len(resolved), muted_count, os.path.normpath(path))
    return path
