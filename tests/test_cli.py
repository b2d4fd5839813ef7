import pytest

from vod_hunter import cli
from vod_hunter.config import SETTINGS_ENV
from vod_hunter.errors import InputError
from vod_hunter.vods import ReturnURL


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    monkeypatch.setenv(SETTINGS_ENV, str(tmp_path / "settings.json"))


SAMPLE_ARGS = {
    "exact": ["dansgaming", "42218705421", "1622854217"],
    "bruteforce": ["dansgaming", "42218705421", "1622854200", "1622854260"],
    "link": ["https://twitchtracker.com/dansgaming/streams/42218705421"],
    "live": ["dansgaming"],
    "clip": ["FunnyClipSlug"],
    "clipforce": ["42218705421", "0", "100"],
    "fix": ["https://vod-secure.twitch.tv/abc/chunked/index-dvr.m3u8"],
}


def test_every_menu_entry_has_a_subcommand():
    assert [entry.selector for entry in cli.MENU] == ["1", "2", "3", "4", "5", "6", "7"]
    parser = cli.build_parser()
    for entry in cli.MENU:
        args = parser.parse_args([entry.command] + SAMPLE_ARGS[entry.command])
        assert args.command == entry.command
        for prompt in entry.prompts:
            assert hasattr(args, prompt.dest)


def test_parse_bruteforce():
    args = cli.build_parser().parse_args(["-t", "20", "-s", "bruteforce", "dansgaming", "42218705421", "2021-06-05 00:50:00", "2021-06-05 00:51:00"])
    assert args.threads == 20
    assert args.simple is True
    assert args.username == "dansgaming"
    assert args.id == 42218705421
    assert args.from_stamp == "2021-06-05 00:50:00"
    assert args.to_stamp == "2021-06-05 00:51:00"


def test_parse_fix():
    args = cli.build_parser().parse_args(["fix", "https://vod-secure.twitch.tv/abc/chunked/index-dvr.m3u8", "-o", "out.m3u8", "--slow"])
    assert args.output == "out.m3u8"
    assert args.slow is True


def test_apply_settings_uses_defaults():
    args = cli.apply_settings(cli.build_parser().parse_args(["-m", "bruteforce", "link", "https://twitchtracker.com/a/streams/1"]))
    assert args.threads == 1000
    assert args.cdnfile is None
    assert args.timeout == 30.0
    assert args.progressbar is False
    assert args.processing_mode is cli.ProcessingType.BRUTEFORCE


def test_fill_out_values(monkeypatch):
    answers = iter(["42218705421", "100", "200"])
    monkeypatch.setattr("builtins.input", lambda: next(answers))
    args = cli.build_parser().parse_args([])

    cli.fill_out_values(cli.MENU_BY_SELECTOR["6"], args)

    assert args.command == "clipforce"
    assert (args.id, args.start, args.end) == (42218705421, 100, 200)


def test_main_runs_the_command(monkeypatch):
    seen = []

    async def run_command(engine, cdns, args):
        seen.append((args.command, args.username, len(cdns)))
        return [ReturnURL("https://vod-secure.twitch.tv/x/chunked/index-dvr.m3u8")]

    monkeypatch.setattr(cli, "run_command", run_command)

    assert cli.main(["exact", "dansgaming", "42218705421", "1622854217"]) == 0
    assert seen == [("exact", "dansgaming", len(cli.compile_cdn_list()))]


def test_main_reports_errors_with_exit_code(monkeypatch):
    async def run_command(engine, cdns, args):
        raise InputError("bad input")

    monkeypatch.setattr(cli, "run_command", run_command)
    assert cli.main(["exact", "dansgaming", "42218705421", "garbage"]) == 1


def test_main_exits_cleanly_on_interrupt(monkeypatch, capsys):
    def interrupted():
        raise KeyboardInterrupt

    monkeypatch.setattr("builtins.input", interrupted)
    assert cli.main([]) == 0
    assert "Exiting..." in capsys.readouterr().out
