import json
import logging
import os

from .web import RetryPolicy


log = logging.getLogger(__name__)

SETTINGS_ENV = "VOD_HUNTER_SETTINGS"

DEFAULT_SETTINGS = {
    "THREADS": 1000,
    "CDN_FILE": None,
    "REQUEST_TIMEOUT": 30,
    "USE_PROGRESS_BAR": False,
    "RETRY_ATTEMPTS": 3,
    "RETRY_DELAY": 5,
}


def get_settings_path():
    return os.environ.get(SETTINGS_ENV) or os.path.join(os.path.expanduser("~"), ".config", "vod_hunter", "settings.json")


def read_config_file(config_path=None):
    config_path = config_path or get_settings_path()
    if not os.path.exists(config_path):
        return {}

    try:
        with open(config_path, "r", encoding="utf-8") as config_file:
            config = json.load(config_file)
    except (OSError, json.JSONDecodeError) as e:
        log.warning("Couldn't read the settings file %s, using defaults - %s", config_path, e)
        return {}

    if not isinstance(config, dict):
        log.warning("The settings file %s must hold a JSON object, using defaults", config_path)
        return {}
    return config


def read_config_by_key(key, config_path=None):
    value = read_config_file(config_path).get(key)
    if value is None:
        return DEFAULT_SETTINGS.get(key)
    return value


def get_retry_policy(config_path=None):
    config = read_config_file(config_path)
    attempts = config.get("RETRY_ATTEMPTS")
    delay = config.get("RETRY_DELAY")
    return RetryPolicy(
        max_attempts=int(attempts or DEFAULT_SETTINGS["RETRY_ATTEMPTS"]),
        backoff=float(DEFAULT_SETTINGS["RETRY_DELAY"] if delay is None else delay),
    )


def setup_logging(verbose=False, simple=False):
    if verbose:
        level = logging.DEBUG
    elif simple:
        level = logging.WARNING
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s.%(msecs)03d %(levelname)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    logging.getLogger("asyncio").setLevel(logging.CRITICAL)
    logging.getLogger("aiohttp").setLevel(logging.CRITICAL)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
