class VodHunterError(Exception):
    pass


class InputError(VodHunterError):
    pass


class TimestampFormatError(InputError):
    def __init__(self, text, cause=None):
        self.text = text
        self.cause = cause
        super().__init__(f"couldn't parse the timestamp: {text!r}")


class UnsupportedHostError(InputError):
    def __init__(self, url):
        self.url = url
        super().__init__("only twitch.tv and cloudfront.net URLs are supported")


class InvalidURLError(InputError):
    def __init__(self, url, reason):
        self.url = url
        self.reason = reason
        super().__init__(reason)


class NetworkError(VodHunterError):
    def __init__(self, url, cause=None):
        self.url = url
        self.cause = cause
        message = f"couldn't process the url: {url}"
        if cause is not None:
            message += f" ({cause})"
        super().__init__(message)


class FormatError(VodHunterError):
    pass


class CDNFileError(FormatError):
    def __init__(self, path, reason):
        self.path = path
        self.reason = reason
        super().__init__(f"couldn't parse the CDN list file {path}: {reason}")


class PlaylistFormatError(FormatError):
    def __init__(self, url, reason):
        self.url = url
        self.reason = reason
        super().__init__(f"couldn't parse the playlist from {url}: {reason}")


class TrackerFormatError(FormatError):
    def __init__(self, url, reason):
        self.url = url
        self.reason = reason
        super().__init__(f"couldn't read the tracker page {url}: {reason}")
