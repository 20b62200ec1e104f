SESSION_COOKIE = "sessionKey"
ORGANIZATION_COOKIE = "lastActiveOrg"

_SESSION_MARKER = f"{SESSION_COOKIE}="


def normalize_session_key(raw: "str") -> "str":
    """
    extracts the bare session token from either a raw token or a
    pasted cookie string such as
    "sessionKey=sk-ant-sid01-...; Domain=.claude.ai; Path=/".
    """
    if not raw:
        return ""

    value = raw
    # a value that still carries the marker is unwrapped again so the
    # result never contains it and normalizing twice is a no-op
    while _SESSION_MARKER in value:
        value = value.split(_SESSION_MARKER, 1)[1].split(";", 1)[0]

    return value.strip()


def parse_cookie_header(raw: "str") -> "dict[str, str]":
    """
    splits a Cookie header ("a=1; b=2") into name/value pairs.
    Parts without a name are skipped.
    """
    cookies: "dict[str, str]" = {}
    for part in (raw or "").split(";"):
        name, sep, value = part.strip().partition("=")
        name = name.strip()
        if not sep or not name:
            continue
        cookies[name] = value.strip()
    return cookies


def organization_from_cookie(raw: "str") -> "str":
    """
    returns the lastActiveOrg value of a pasted cookie header, or
    an empty string when there is none.
    """
    return parse_cookie_header(raw).get(ORGANIZATION_COOKIE, "")
