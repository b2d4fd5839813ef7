import json
import logging
import os
import tomllib

import yaml

from .errors import CDNFileError


log = logging.getLogger(__name__)

CDN_URLS = [
    "d1m7jfoe9zdc1j.cloudfront.net",
    "d1mhjrowxxagfy.cloudfront.net",
    "d1ymi26ma8va5x.cloudfront.net",
    "d2aba1wr3818hz.cloudfront.net",
    "d2e2de1etea730.cloudfront.net",
    "d2nvs31859zcd8.cloudfront.net",
    "d2vjef5jvl6bfs.cloudfront.net",
    "d35j504z0x2vu2.cloudfront.net",
    "d3aqoihi2n8ty8.cloudfront.net",
    "d3c27h4odz752x.cloudfront.net",
    "d3vd9lfkzbru3h.cloudfront.net",
    "ddacn6pr5v0tl.cloudfront.net",
    "dgeft87wbj63p.cloudfront.net",
    "dqrpb9wgowsf5.cloudfront.net",
    "ds0h3roq6wcgc.cloudfront.net",
    "vod-metro.twitch.tv",
    "vod-pop-secure.twitch.tv",
    "vod-secure.twitch.tv",
]


def cdns_from_mapping(data, path):
    if not isinstance(data, dict) or "cdns" not in data:
        raise CDNFileError(path, "missing the 'cdns' list")
    cdns = data["cdns"]
    if not isinstance(cdns, list) or not all(isinstance(cdn, str) for cdn in cdns):
        raise CDNFileError(path, "'cdns' must be a list of hostnames")
    return cdns


def cdns_from_lines(text):
    return [line.strip() for line in text.splitlines() if line.strip()]


def read_cdn_file(path):
    extension = os.path.splitext(path)[1].lower().lstrip(".")

    try:
        with open(path, "r", encoding="utf-8") as cdn_file:
            content = cdn_file.read()
    except UnicodeDecodeError as e:
        raise CDNFileError(path, f"not UTF-8 text - {e}") from e

    if extension in ("", "txt"):
        return cdns_from_lines(content)

    try:
        if extension == "json":
            data = json.loads(content)
        elif extension == "toml":
            data = tomllib.loads(content)
        elif extension in ("yaml", "yml"):
            data = yaml.safe_load(content)
        else:
            raise CDNFileError(path, "it must either be a text file, a JSON file, a TOML file or a YAML file")
    except (json.JSONDecodeError, tomllib.TOMLDecodeError, yaml.YAMLError) as e:
        raise CDNFileError(path, f"invalid {extension.upper()} - {e}") from e

    return cdns_from_mapping(data, path)


def compile_cdn_list(cdn_file_path=None):
    """Built-in CDN hostnames merged with an optional override file.

    A file that can't be read or parsed is logged and the built-in list is
    returned.
    """
    cdns = set(CDN_URLS)
    if not cdn_file_path:
        return sorted(cdns)

    try:
        extra = read_cdn_file(cdn_file_path)
    except OSError as e:
        log.info("Couldn't open the CDN config file - %s", e)
        return sorted(cdns)
    except CDNFileError as e:
        log.info("%s", e)
        return sorted(cdns)

    cdns.update(extra)
    compiled = sorted(cdns)

    if len(compiled) != len(CDN_URLS):
        log.debug("Compiled the new CDN list - initial length: %d, new length: %d", len(CDN_URLS), len(compiled))
    else:
        log.debug("No new CDNs added - initial length: %d, new length: %d", len(CDN_URLS), len(compiled))
    return compiled
