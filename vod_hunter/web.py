import logging
import random
import time
from dataclasses import dataclass

import requests

from .errors import NetworkError


log = logging.getLogger(__name__)

CURL_UA = "curl/7.54.0"

# streamscharts rejects user agents carrying "X11;"
USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:127.0) Gecko/20100101 Firefox/127.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.5 Safari/605.1.15",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/125.0.0.0 Safari/537.36 Edg/125.0.0.0",
]


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    backoff: float = 5.0


def return_user_agent():
    if not USER_AGENTS:
        return {"user-agent": CURL_UA}
    return {"user-agent": random.choice(USER_AGENTS)}


def request_with_retries(method, url, policy=RetryPolicy(), timeout=30, **kwargs):
    """Send a request, retrying transport errors and error statuses.

    Raises NetworkError once ``policy.max_attempts`` attempts have failed.
    """
    last_error = None
    for attempt in range(1, policy.max_attempts + 1):
        try:
            response = requests.request(method, url, timeout=timeout, **kwargs)
            response.raise_for_status()
            return response
        except requests.RequestException as e:
            last_error = e
            log.debug("Attempt %d/%d for %s failed - %s", attempt, policy.max_attempts, url, e)
            if attempt < policy.max_attempts:
                time.sleep(policy.backoff)
    raise NetworkError(url, last_error)
