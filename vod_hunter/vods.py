import asyncio
import logging
from dataclasses import dataclass

from .candidates import (
    TimestampRange,
    bruteforce_candidates,
    clip_offset_candidates,
    hashed_candidates,
    vod_hash,
    vod_url,
)
from .errors import InputError
from .timestamps import parse_timestamp
from .trackers import ProcessingType, derive_date_from_url, twitchtracker_url
from .twitch_api import find_bid_from_clip, find_bid_from_username
from .web import RetryPolicy


log = logging.getLogger(__name__)

GREEN = "\033[92m"
RED = "\033[91m"
RESET = "\033[0m"

DEBUG_CDN = "vod-secure.twitch.tv"


@dataclass(frozen=True)
class ReturnURL:
    url: str
    muted: bool = False


def show_urls(urls, simple):
    for url in urls:
        if simple:
            print(url.url)
        else:
            log.info("%s%s%s", GREEN, url.url, RESET)


def report(valid_urls, simple, debug_url):
    if valid_urls:
        log.info("Got the URL and it %swas available%s on Twitch servers. Here are the valid URLs:", GREEN, RESET)
        show_urls(valid_urls, simple)
    else:
        log.info("Got the URL and it %swas NOT available%s on Twitch servers :(", RED, RESET)
        log.info("Here's the URL for debug purposes - %s", debug_url)


async def check_availability(engine, hex_hash, username, broadcast_id, epoch, cdns):
    """Every CDN currently serving the VOD behind ``hex_hash``, in CDN order.

    An empty list means "not available right now", not a failure.
    """
    candidates = hashed_candidates(hex_hash, username, broadcast_id, epoch, cdns)
    hits = await engine.all_hits(candidates)
    return [ReturnURL(candidate.full_url) for candidate in hits]


async def exact(engine, username, broadcast_id, stamp, cdns, simple=False):
    epoch = parse_timestamp(str(stamp))
    hex_hash = vod_hash(username, broadcast_id, epoch)

    valid_urls = await check_availability(engine, hex_hash, username, broadcast_id, epoch, cdns)
    report(valid_urls, simple, vod_url(DEBUG_CDN, hex_hash, username, broadcast_id, epoch))
    return valid_urls


async def bruteforce(engine, username, broadcast_id, from_stamp, to_stamp, cdns, simple=False):
    stamps = TimestampRange(parse_timestamp(str(from_stamp)), parse_timestamp(str(to_stamp)))
    candidates = bruteforce_candidates(username, broadcast_id, stamps, cdns)

    log.info("Starting! Checking %d URLs (%d timestamps x %d CDNs)", len(candidates), len(stamps), len(cdns))
    final_url = await engine.first_hit(candidates)
    log.debug("Checked %d URLs - %s", engine.examined, dict((k.value, v) for k, v in engine.stats.items()))

    if final_url is None:
        log.info("%sCouldn't find anything :(%s", RED, RESET)
        return []

    valid_urls = await check_availability(engine, final_url.hash, username, broadcast_id, final_url.epoch, cdns)
    report(valid_urls, simple, final_url.full_url)
    return valid_urls


async def link(engine, url, cdns, mode=None, policy=RetryPolicy(), simple=False):
    processing_type, data = await asyncio.to_thread(derive_date_from_url, url, mode, policy)

    if processing_type is ProcessingType.EXACT:
        return await exact(engine, data.username, data.broadcast_id, data.start_date, cdns, simple)

    if data.end_date is None:
        log.error("Couldn't get the end date for the bruteforce method")
        return []
    return await bruteforce(engine, data.username, data.broadcast_id, data.start_date, data.end_date, cdns, simple)


async def live(engine, username, cdns, policy=RetryPolicy(), simple=False):
    found = await asyncio.to_thread(find_bid_from_username, username, policy)
    if found is None:
        return []
    broadcast_id, stamp = found
    return await exact(engine, username, broadcast_id, stamp, cdns, simple)


async def clip(engine, clip_url, cdns, policy=RetryPolicy(), simple=False):
    found = await asyncio.to_thread(find_bid_from_clip, clip_url, policy)
    if found is None:
        return []
    username, broadcast_id = found
    _, data = await asyncio.to_thread(derive_date_from_url, twitchtracker_url(username, broadcast_id), None, policy)
    return await exact(engine, username, broadcast_id, data.start_date, cdns, simple)


async def clip_bruteforce(engine, vod_id, start, end, simple=False):
    if start > end:
        raise InputError(f"the start offset {start} is after the end offset {end}")

    hits = await engine.all_hits(clip_offset_candidates(vod_id, start, end))
    clips = [ReturnURL(candidate.full_url) for candidate in hits]

    if clips:
        log.info("%sGot some clips%s! Here are the URLs:", GREEN, RESET)
        show_urls(clips, simple)
    else:
        log.info("%sCouldn't find anything :(%s", RED, RESET)
    return clips
