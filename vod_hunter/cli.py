import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass

from . import __version__, playlist, vods
from .cdns import compile_cdn_list
from .config import get_retry_policy, read_config_by_key, setup_logging
from .errors import VodHunterError
from .probe import ProbeEngine, create_session
from .trackers import ProcessingType


log = logging.getLogger(__name__)

BLUE = "\033[94m"
YELLOW = "\033[93m"
RESET = "\033[0m"


@dataclass(frozen=True)
class Prompt:
    dest: str
    text: str
    convert: type = str


@dataclass(frozen=True)
class MenuEntry:
    selector: str
    command: str
    name: str
    description: str
    prompts: tuple


MENU = (
    MenuEntry("1", "exact", "Exact mode",
              "Combine the username, broadcast ID and timestamp into an m3u8 URL and check whether the VOD is available", (
                  Prompt("username", "Please enter the streamer's username:"),
                  Prompt("id", "Please enter the VOD/broadcast ID:", int),
                  Prompt("stamp", "Please enter the timestamp:"),
              )),
    MenuEntry("2", "bruteforce", "Bruteforce mode",
              "Go over a range of timestamps looking for a working m3u8 URL", (
                  Prompt("username", "Please enter the streamer's username:"),
                  Prompt("id", "Please enter the VOD/broadcast ID:", int),
                  Prompt("from_stamp", "Please enter the first timestamp: [year]-[month]-[day] [hour]:[minute]:[second]"),
                  Prompt("to_stamp", "Please enter the last timestamp: [year]-[month]-[day] [hour]:[minute]:[second]"),
              )),
    MenuEntry("3", "link", "Link mode",
              "Get the m3u8 from a TwitchTracker/StreamsCharts URL", (
                  Prompt("url", "Please enter the TwitchTracker or StreamsCharts URL:"),
              )),
    MenuEntry("4", "live", "Live mode",
              "Get the m3u8 from a currently running stream", (
                  Prompt("username", "Please enter the streamer's username:"),
              )),
    MenuEntry("5", "clip", "Clip mode",
              "Get the m3u8 of the VOD a clip was taken from", (
                  Prompt("clip", "Please enter the clip's URL (twitch.tv/%username%/clip/%slug% and clips.twitch.tv/%slug% are both supported) or the slug:"),
              )),
    MenuEntry("6", "clipforce", "Clip bruteforce mode",
              "Go over a range of offsets looking for clips in a VOD", (
                  Prompt("id", "Please enter the VOD/broadcast ID:", int),
                  Prompt("start", "Please enter the starting timestamp (in seconds):", int),
                  Prompt("end", "Please enter the end timestamp (in seconds):", int),
              )),
    MenuEntry("7", "fix", "Fix playlist",
              "Convert an unplayable unmuted Twitch VOD playlist into a playable muted one", (
                  Prompt("url", "Please enter Twitch VOD m3u8 playlist URL (only twitch.tv and cloudfront.net URLs are supported):"),
              )),
)

MENU_BY_SELECTOR = {entry.selector: entry for entry in MENU}


def build_parser():
    parser = argparse.ArgumentParser(prog="vod-hunter", description="Finds VOD playlists on Twitch.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-t", "--threads", type=int, help="Set the amount of concurrent requests (default 1000)")
    parser.add_argument("-s", "--simple", action="store_true", help="Provide minimal output")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show more info")
    parser.add_argument("-c", "--cdnfile", help="Import more CDN urls via a config file (TXT/JSON/YAML/TOML)")
    parser.add_argument("-p", "--progressbar", action="store_true", help="Enable a progress bar")
    parser.add_argument("-m", "--mode", choices=[mode.value for mode in ProcessingType],
                        help="Select the preferred processing mode for StreamsCharts")

    subparsers = parser.add_subparsers(dest="command")

    exact = subparsers.add_parser("exact", help="Check a single username/ID/timestamp combination")
    exact.add_argument("username", help="Streamer's username")
    exact.add_argument("id", type=int, help="VOD/broadcast ID")
    exact.add_argument("stamp", help='Unix time, "2020-11-12 20:02:13" or RFC 3339')

    bruteforce = subparsers.add_parser("bruteforce", help="Go over a range of timestamps")
    bruteforce.add_argument("username", help="Streamer's username")
    bruteforce.add_argument("id", type=int, help="VOD/broadcast ID")
    bruteforce.add_argument("from_stamp", metavar="from", help="First timestamp")
    bruteforce.add_argument("to_stamp", metavar="to", help="Last timestamp")

    link = subparsers.add_parser("link", help="Get the m3u8 from a TwitchTracker/StreamsCharts URL")
    link.add_argument("url")

    live = subparsers.add_parser("live", help="Get the m3u8 from a currently running stream")
    live.add_argument("username")

    clip = subparsers.add_parser("clip", help="Get the m3u8 of the VOD a clip belongs to")
    clip.add_argument("clip", help="Clip URL or slug")

    clipforce = subparsers.add_parser("clipforce", help="Go over a range of offsets looking for clips")
    clipforce.add_argument("id", type=int, help="VOD/broadcast ID")
    clipforce.add_argument("start", type=int, help="First offset (seconds)")
    clipforce.add_argument("end", type=int, help="Last offset (seconds, exclusive)")

    fix = subparsers.add_parser("fix", help="Turn an unplayable unmuted playlist into a playable muted one")
    fix.add_argument("url", help="Twitch VOD m3u8 playlist URL (twitch.tv or cloudfront.net)")
    fix.add_argument("-o", "--output", help="Output path (default is the current folder)")
    fix.add_argument("--slow", action="store_true", help="Check every segment on the server (slower)")

    return parser


def apply_settings(args):
    if args.threads is None:
        args.threads = int(read_config_by_key("THREADS"))
    if args.cdnfile is None:
        args.cdnfile = read_config_by_key("CDN_FILE")
    args.progressbar = args.progressbar or bool(read_config_by_key("USE_PROGRESS_BAR"))
    args.timeout = float(read_config_by_key("REQUEST_TIMEOUT"))
    args.policy = get_retry_policy()
    args.processing_mode = ProcessingType(args.mode) if args.mode else None
    return args


async def run_command(engine, cdns, args):
    if args.command == "exact":
        return await vods.exact(engine, args.username, args.id, args.stamp, cdns, args.simple)
    if args.command == "bruteforce":
        return await vods.bruteforce(engine, args.username, args.id, args.from_stamp, args.to_stamp, cdns, args.simple)
    if args.command == "link":
        return await vods.link(engine, args.url, cdns, args.processing_mode, args.policy, args.simple)
    if args.command == "live":
        return await vods.live(engine, args.username, cdns, args.policy, args.simple)
    if args.command == "clip":
        return await vods.clip(engine, args.clip, cdns, args.policy, args.simple)
    if args.command == "clipforce":
        return await vods.clip_bruteforce(engine, args.id, args.start, args.end, args.simple)
    if args.command == "fix":
        await playlist.fix(engine, args.url, getattr(args, "output", None), getattr(args, "slow", False))
        return []
    raise VodHunterError(f"unknown command: {args.command}")


async def execute(args, interactive=False):
    cdns = compile_cdn_list(args.cdnfile)
    async with create_session(args.threads, args.timeout) as session:
        engine = ProbeEngine(session, threads=args.threads, progress=args.progressbar)
        valid_urls = await run_command(engine, cdns, args)
        if interactive and valid_urls and args.command != "clipforce":
            await offer_fix(engine, valid_urls[0].url)
        return valid_urls


def ask_for_value(text):
    print(f"{BLUE}{text}{RESET}")
    return input().strip()


def get_yes_no_choice(prompt):
    answer = ask_for_value(f"{prompt} (Y/n)").lower()
    return answer in ("", "y", "yes")


async def offer_fix(engine, url):
    try:
        muted = await playlist.is_video_muted(engine.session, url)
    except VodHunterError as e:
        log.warning("Couldn't check the playlist for muted segments - %s", e)
        return
    if muted and get_yes_no_choice("The VOD has muted segments. Do you want to download the fixed playlist?"):
        await playlist.fix(engine, url)


def print_menu():
    print("Select the application mode:")
    for entry in MENU:
        print(f"[{YELLOW}{entry.selector}{RESET}] {entry.name} - {entry.description}")


def fill_out_values(entry, args):
    args.command = entry.command
    for prompt in entry.prompts:
        setattr(args, prompt.dest, prompt.convert(ask_for_value(prompt.text)))
    return args


def main_interface(args):
    args.progressbar = True
    while True:
        print_menu()
        entry = MENU_BY_SELECTOR.get(input().strip())
        if entry is None:
            log.error("Couldn't select the specified mode")
            continue
        try:
            fill_out_values(entry, args)
        except ValueError as e:
            log.error("%s", e)
            continue
        try:
            asyncio.run(execute(args, interactive=True))
        except VodHunterError as e:
            log.error("%s", e)


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose, args.simple)
    apply_settings(args)

    try:
        if args.command is None:
            main_interface(args)
        else:
            asyncio.run(execute(args))
    except VodHunterError as e:
        log.error("%s", e)
        return 1
    except (KeyboardInterrupt, EOFError):
        print("\n\nExiting...")
        return 0
    return 0


if __name__ == "__main__":
    sys.exit(main())
