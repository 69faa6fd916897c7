RESTRICTED_PREFIXES = ("chrome:", "edge:", "about:", "file:", "chrome-extension:")

_PLATFORMS = [
    ("meet.google.com", "Google Meet"),
    ("zoom.us", "Zoom"),
    ("teams.microsoft.com", "Microsoft Teams"),
    ("teams.live.com", "Microsoft Teams"),
    ("webex.com", "Webex"),
    ("slack.com", "Slack"),
    ("discord.com", "Discord"),
]


def detect_platform(url: str | None) -> str:
    lowered = str(url or "").lower()
    for marker, name in _PLATFORMS:
        if marker in lowered:
            return name
    return "Web"


def is_restricted_url(url: str | None) -> bool:
    """Browser-internal surfaces where capture cannot run."""
    return str(url or "").strip().lower().startswith(RESTRICTED_PREFIXES)
