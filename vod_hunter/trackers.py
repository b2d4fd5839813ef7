import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from .errors import InvalidURLError, TrackerFormatError, VodHunterError
from .timestamps import parse_timestamp
from .web import RetryPolicy, request_with_retries, return_user_agent


log = logging.getLogger(__name__)

TWITCHTRACKER_HOSTS = ("twitchtracker.com", "www.twitchtracker.com")
STREAMSCHARTS_HOSTS = ("streamscharts.com", "www.streamscharts.com")

# streamscharts only shows the start minute when it has no clip data
BRUTEFORCE_WINDOW = 60


class ProcessingType(Enum):
    EXACT = "exact"
    BRUTEFORCE = "bruteforce"


@dataclass(frozen=True)
class URLData:
    username: str
    broadcast_id: int
    start_date: str
    end_date: Optional[str] = None


@dataclass(frozen=True)
class ExtractedTimestamps:
    processing_type: ProcessingType
    start_timestamp: int
    end_timestamp: int


def twitchtracker_url(username, broadcast_id):
    return f"https://twitchtracker.com/{username}/streams/{broadcast_id}"


def parse_tracker_url(url):
    """Split a tracker VOD URL into ``(site, username, broadcast_id)``.

    Nothing is fetched; malformed URLs raise InvalidURLError.
    """
    parsed = urlparse(url if "://" in url else f"https://{url}")
    host = (parsed.hostname or "").lower()
    segments = [segment for segment in parsed.path.split("/") if segment]

    if host in TWITCHTRACKER_HOSTS:
        if len(segments) == 3 and segments[1] == "streams" and segments[2].isdigit():
            return "twitchtracker", segments[0], int(segments[2])
        raise InvalidURLError(url, "Not a valid TwitchTracker VOD URL")

    if host in STREAMSCHARTS_HOSTS:
        if len(segments) == 4 and segments[0] == "channels" and segments[2] == "streams" and segments[3].isdigit():
            return "streamscharts", segments[1], int(segments[3])
        raise InvalidURLError(url, "Not a valid StreamsCharts VOD URL")

    raise InvalidURLError(url, "Only twitchtracker.com and streamscharts.com URLs are supported")


def process_url(url, policy=RetryPolicy()):
    response = request_with_retries("GET", url, policy=policy, headers=return_user_agent())
    return BeautifulSoup(response.content, "html.parser")


def parse_twitchtracker_datetime(bs, url=""):
    element = bs.select_one(".stream-timestamp-dt.to-dowdatetime")
    if element is None:
        raise TrackerFormatError(url, "couldn't find the stream timestamp element")
    return element.get_text().strip()


def sc_extract_exact_timestamps(bs, url=""):
    element = bs.select_one("div > div[data-requests]")
    if element is None:
        raise TrackerFormatError(url, "couldn't find the clip data element")
    try:
        clips = json.loads(element["data-requests"])
        start_timestamp = parse_timestamp(clips[0]["started_at"])
        end_timestamp = parse_timestamp(clips[-1]["ended_at"])
    except (ValueError, KeyError, IndexError, TypeError, VodHunterError) as e:
        raise TrackerFormatError(url, f"couldn't read the clip data - {e}") from e
    return ExtractedTimestamps(ProcessingType.EXACT, start_timestamp, end_timestamp)


def sc_bruteforce_timestamps(bs, url=""):
    element = bs.find("time")
    if element is None or not element.get("datetime"):
        raise TrackerFormatError(url, "couldn't find the stream start time")
    try:
        started = parse_timestamp(element["datetime"])
    except VodHunterError as e:
        raise TrackerFormatError(url, str(e)) from e
    return ExtractedTimestamps(ProcessingType.BRUTEFORCE, started - BRUTEFORCE_WINDOW, started + BRUTEFORCE_WINDOW)


def extract_streamscharts_timestamps(bs, mode=None, url=""):
    if mode is ProcessingType.BRUTEFORCE:
        log.info("Bruteforcing for timestamps...")
        return sc_bruteforce_timestamps(bs, url)

    log.info("Extracting exact timestamps...")
    if mode is ProcessingType.EXACT:
        return sc_extract_exact_timestamps(bs, url)

    try:
        return sc_extract_exact_timestamps(bs, url)
    except TrackerFormatError as e:
        log.debug("%s", e)
        log.info("Bruteforcing for timestamps...")
        return sc_bruteforce_timestamps(bs, url)


def derive_date_from_url(url, mode=None, policy=RetryPolicy()):
    """Return ``(ProcessingType, URLData)`` for a TwitchTracker/StreamsCharts URL."""
    site, username, broadcast_id = parse_tracker_url(url)
    bs = process_url(url, policy)

    if site == "twitchtracker":
        start_date = parse_twitchtracker_datetime(bs, url)
        return ProcessingType.EXACT, URLData(username, broadcast_id, start_date)

    extracted = extract_streamscharts_timestamps(bs, mode, url)
    approximate_or_exact = "exact" if extracted.processing_type is ProcessingType.EXACT else "approximate"
    log.info(
        "Found %s timestamps for the stream. Started at %d and ended at %d.",
        approximate_or_exact, extracted.start_timestamp, extracted.end_timestamp,
    )
    return extracted.processing_type, URLData(
        username, broadcast_id, str(extracted.start_timestamp), str(extracted.end_timestamp)
    )
