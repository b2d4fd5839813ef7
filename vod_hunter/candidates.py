import hashlib
from dataclasses import dataclass

from .errors import InputError


CLIP_ASSETS_HOST = "clips-media-assets2.twitch.tv"


@dataclass(frozen=True)
class CandidateURL:
    full_url: str
    hash: str
    epoch: int


@dataclass(frozen=True)
class ClipCandidate:
    full_url: str
    offset: int


@dataclass(frozen=True)
class TimestampRange:
    start: int
    end: int

    def __post_init__(self):
        if self.start > self.end:
            raise InputError(f"range start {self.start} is after its end {self.end}")

    def __iter__(self):
        return iter(range(self.start, self.end + 1))

    def __len__(self):
        return self.end - self.start + 1


def vod_hash(username, broadcast_id, epoch):
    return hashlib.sha1(f"{username}_{broadcast_id}_{epoch}".encode("utf-8")).hexdigest()[:20]


def vod_url(cdn, hex_hash, username, broadcast_id, epoch):
    return f"https://{cdn}/{hex_hash}_{username}_{broadcast_id}_{epoch}/chunked/index-dvr.m3u8"


def hashed_candidates(hex_hash, username, broadcast_id, epoch, cdns):
    return [
        CandidateURL(vod_url(cdn, hex_hash, username, broadcast_id, epoch), hex_hash, epoch)
        for cdn in cdns
    ]


def exact_candidates(username, broadcast_id, epoch, cdns):
    return hashed_candidates(vod_hash(username, broadcast_id, epoch), username, broadcast_id, epoch, cdns)


def bruteforce_candidates(username, broadcast_id, stamps: TimestampRange, cdns):
    candidates = []
    for epoch in stamps:
        candidates.extend(exact_candidates(username, broadcast_id, epoch, cdns))
    return candidates


def clip_offset_candidates(vod_id, start, end):
    return [
        ClipCandidate(f"https://{CLIP_ASSETS_HOST}/{vod_id}-offset-{offset}.mp4", offset)
        for offset in range(start, end)
    ]
