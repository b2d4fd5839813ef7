import logging
from urllib.parse import urlparse

from .errors import InvalidURLError
from .web import RetryPolicy, request_with_retries


log = logging.getLogger(__name__)

GQL_URL = "https://gql.twitch.tv/gql"
CLIENT_ID = "kimne78kx3ncx6brgo4mv6wki5h1ko"

STREAM_QUERY = "query($login:String){user(login: $login){stream{id createdAt}}}"
CLIP_QUERY = "query($slug:ID!){clip(slug: $slug){broadcaster{login}broadcast{id}}}"


def gql_query(query, variables, policy=RetryPolicy()):
    response = request_with_retries(
        "POST",
        GQL_URL,
        policy=policy,
        json={"query": query, "variables": variables},
        headers={"Client-ID": CLIENT_ID, "Accept": "application/json"},
    )
    try:
        return response.json() or {}
    except ValueError as e:
        log.error("Couldn't decode the Twitch API response: %s", e)
        return {}


def find_bid_from_username(username, policy=RetryPolicy()):
    """Broadcast id and start time of the user's current stream, or None."""
    data = gql_query(STREAM_QUERY, {"login": username}, policy)
    user = (data.get("data") or {}).get("user") or {}
    stream = user.get("stream")
    if not stream:
        log.info("%s doesn't seem to be live right now", username)
        return None
    return int(stream["id"]), stream["createdAt"]


def extract_slug(clip):
    """Pull the clip slug out of a clip URL; anything that isn't a URL is taken as a slug."""
    clip = clip.strip()
    if "://" not in clip and "/" not in clip:
        return clip

    parsed = urlparse(clip if "://" in clip else f"https://{clip}")
    host = (parsed.hostname or "").lower()
    segments = [segment for segment in parsed.path.split("/") if segment]

    if host in ("twitch.tv", "www.twitch.tv", "m.twitch.tv"):
        if len(segments) > 2 and segments[1] == "clip":
            return segments[2]
        raise InvalidURLError(clip, "Not a clip URL")
    if host == "clips.twitch.tv":
        if segments:
            return segments[0]
        raise InvalidURLError(clip, "Not a clip URL")
    raise InvalidURLError(clip, "Only twitch.tv URLs are supported")


def find_bid_from_clip(clip, policy=RetryPolicy()):
    """``(broadcaster login, broadcast id)`` for a clip URL or slug, or None."""
    slug = extract_slug(clip)
    data = gql_query(CLIP_QUERY, {"slug": slug}, policy)
    clip_data = (data.get("data") or {}).get("clip")
    if not clip_data or not clip_data.get("broadcast"):
        log.error("Couldn't get the info from the clip: %s", slug)
        return None
    return clip_data["broadcaster"]["login"], int(clip_data["broadcast"]["id"])
