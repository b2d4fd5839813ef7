import asyncio
import os

import m3u8
import pytest

from conftest import FakeResponse, FakeSession
from vod_hunter import playlist
from vod_hunter.errors import InvalidURLError, NetworkError, PlaylistFormatError, UnsupportedHostError
from vod_hunter.probe import ProbeEngine


PLAYLIST_URL = "https://d1m7jfoe9zdc1j.cloudfront.net/d3dcbaf880c9e36ed8c8_dansgaming_42218705421_1622854217/chunked/index-dvr.m3u8"
BASE_URL = "https://d1m7jfoe9zdc1j.cloudfront.net/d3dcbaf880c9e36ed8c8_dansgaming_42218705421_1622854217/chunked/"

PLAYLIST_BODY = """#EXTM3U
#EXT-X-VERSION:3
#EXT-X-TARGETDURATION:10
#ID3-EQUIV-TDTG:2021-06-05T04:36:29
#EXT-X-PLAYLIST-TYPE:EVENT
#EXT-X-MEDIA-SEQUENCE:5
#EXT-X-DISCONTINUITY-SEQUENCE:2
#EXT-X-TWITCH-ELAPSED-SECS:0.000
#EXT-X-TWITCH-TOTAL-SECS:34.750
#EXTINF:10.000,
0.ts
#EXTINF:9.500,
1-unmuted.ts
#EXTINF:8.000,
2-unmuted.ts
#EXTINF:7.250,
3.ts
#EXT-X-ENDLIST
"""

MASTER_BODY = """#EXTM3U
#EXT-X-STREAM-INF:BANDWIDTH=1280000,RESOLUTION=1280x720
720p/index-dvr.m3u8
"""


def playlist_session(body=PLAYLIST_BODY, segment_routes=None):
    routes = {PLAYLIST_URL: FakeResponse(200, body)}
    routes.update(segment_routes or {})
    return FakeSession(routes, default=200)


def read_output(path):
    return m3u8.load(str(path))


def test_pattern_mode_swaps_unmuted_segments(tmp_path):
    output = tmp_path / "fixed.m3u8"
    engine = ProbeEngine(playlist_session())

    path = asyncio.run(playlist.fix(engine, PLAYLIST_URL, str(output)))

    assert path == str(output)
    fixed = read_output(output)
    assert [segment.uri for segment in fixed.segments] == [
        BASE_URL + "0.ts",
        BASE_URL + "1-muted.ts",
        BASE_URL + "2-muted.ts",
        BASE_URL + "3.ts",
    ]
    assert [segment.duration for segment in fixed.segments] == [10.0, 9.5, 8.0, 7.25]


def test_pattern_mode_makes_no_segment_requests(tmp_path):
    session = playlist_session()
    asyncio.run(playlist.fix(ProbeEngine(session), PLAYLIST_URL, str(tmp_path / "fixed.m3u8")))
    assert session.requested == [PLAYLIST_URL]


def test_pattern_mode_rewrites_exactly_the_unmuted_segments(tmp_path):
    lines = ["#EXTM3U", "#EXT-X-TARGETDURATION:10"]
    unmuted = {3, 7, 11, 12}
    for index in range(15):
        lines.append("#EXTINF:10.000,")
        lines.append(f"{index}-unmuted.ts" if index in unmuted else f"{index}.ts")
    lines.append("#EXT-X-ENDLIST")
    output = tmp_path / "fixed.m3u8"

    asyncio.run(playlist.fix(ProbeEngine(playlist_session("\n".join(lines))), PLAYLIST_URL, str(output)))

    uris = [segment.uri for segment in read_output(output).segments]
    assert len(uris) == 15
    assert {index for index, uri in enumerate(uris) if uri.endswith("-muted.ts")} == unmuted


def test_container_fields_are_copied(tmp_path):
    output = tmp_path / "fixed.m3u8"
    asyncio.run(playlist.fix(ProbeEngine(playlist_session()), PLAYLIST_URL, str(output)))
    text = output.read_text(encoding="utf-8")

    assert text.startswith("#EXTM3U")
    assert "#EXT-X-VERSION:3" in text
    assert "#EXT-X-TARGETDURATION:10" in text
    assert "#EXT-X-MEDIA-SEQUENCE:5" in text
    assert "#EXT-X-DISCONTINUITY-SEQUENCE:2" in text
    assert "#EXT-X-PLAYLIST-TYPE:EVENT" in text
    assert text.rstrip().endswith("#EXT-X-ENDLIST")


def test_verified_mode_uses_server_answers(tmp_path):
    routes = {
        BASE_URL + "0.ts": 200,
        BASE_URL + "1-unmuted.ts": 403,
        BASE_URL + "2-unmuted.ts": 200,
        BASE_URL + "3.ts": 403,
    }
    output = tmp_path / "fixed.m3u8"
    session = playlist_session(segment_routes=routes)

    asyncio.run(playlist.fix(ProbeEngine(session, threads=2), PLAYLIST_URL, str(output), slow=True))

    fixed = read_output(output)
    assert [segment.uri for segment in fixed.segments] == [
        BASE_URL + "0.ts",
        BASE_URL + "1-muted.ts",
        BASE_URL + "2-unmuted.ts",
        BASE_URL + "3-muted.ts",
    ]
    assert [segment.duration for segment in fixed.segments] == [10.0, 9.5, 8.0, 7.25]
    assert sorted(session.requested[1:]) == sorted(routes)


def test_verified_mode_orders_segments_naturally():
    segments = [playlist.PlaylistSegment(f"{index}.ts", float(index), False) for index in (9, 10, 100, 2)]
    session = FakeSession(default=200)

    resolved = asyncio.run(playlist.resolve_by_status(ProbeEngine(session), segments, "https://x.twitch.tv/a/b/"))

    assert resolved == [
        ("https://x.twitch.tv/a/b/2.ts", 9.0),
        ("https://x.twitch.tv/a/b/9.ts", 10.0),
        ("https://x.twitch.tv/a/b/10.ts", 100.0),
        ("https://x.twitch.tv/a/b/100.ts", 2.0),
    ]


def test_natural_key():
    assert sorted(["10.ts", "9.ts", "100-muted.ts", "1.ts"], key=playlist.natural_key) == [
        "1.ts", "9.ts", "10.ts", "100-muted.ts",
    ]


def test_default_output_path(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    path = asyncio.run(playlist.fix(ProbeEngine(playlist_session()), PLAYLIST_URL))
    assert os.path.basename(path) == "muted_d3dcbaf880c9e36ed8c8_dansgaming_42218705421_1622854217.m3u8"
    assert os.path.exists(tmp_path / os.path.basename(path))


@pytest.mark.parametrize("url", [
    "https://example.com/abc/chunked/index-dvr.m3u8",
    "https://twitch.tv.example.com/abc/chunked/index-dvr.m3u8",
])
def test_unsupported_host_fails_before_any_request(url):
    session = playlist_session()
    with pytest.raises(UnsupportedHostError):
        asyncio.run(playlist.fix(ProbeEngine(session), url))
    assert session.requested == []


def test_malformed_url_fails_before_any_request():
    session = playlist_session()
    with pytest.raises(InvalidURLError):
        asyncio.run(playlist.fix(ProbeEngine(session), "not a url"))
    assert session.requested == []


@pytest.mark.parametrize("body", ["<html>gone</html>", "", MASTER_BODY])
def test_unparsable_playlist_writes_nothing(tmp_path, body):
    output = tmp_path / "fixed.m3u8"
    with pytest.raises(PlaylistFormatError):
        asyncio.run(playlist.fix(ProbeEngine(playlist_session(body)), PLAYLIST_URL, str(output)))
    assert not output.exists()


def test_playlist_download_failure_is_fatal(tmp_path):
    output = tmp_path / "fixed.m3u8"
    with pytest.raises(NetworkError):
        asyncio.run(playlist.fix(ProbeEngine(FakeSession(default=403)), PLAYLIST_URL, str(output)))
    assert not output.exists()


def test_is_video_muted():
    assert asyncio.run(playlist.is_video_muted(playlist_session(), PLAYLIST_URL)) is True
    clean = PLAYLIST_BODY.replace("-unmuted", "")
    assert asyncio.run(playlist.is_video_muted(playlist_session(clean), PLAYLIST_URL)) is False
