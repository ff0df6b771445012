"""API version routing.

Most resources are served by version 1 of the REST API, but some subtrees
only exist (or only behave) on later versions. Requests that do not name a
version explicitly are routed through :data:`VERSION_RULES`.
"""

import re

DEFAULT_VERSION = 1

# Ordered; the first matching pattern wins.
VERSION_RULES: tuple[tuple[re.Pattern[str], int], ...] = (
    (re.compile(r"^/setting/netscans/"), 2),
    (re.compile(r"^/device/devices/\d+/flows"), 2),
    (re.compile(r"^/setting/alert/internalalerts"), 2),
    (re.compile(r"^/debug$"), 2),
    (re.compile(r"^/setting/(role|admin)/groups"), 3),
    (
        re.compile(
            r"^/setting/(oids|functions|configsources|eventsources|propertyrules"
            r"|batchjobs|topologysources|registry|alert/dependencyrules)\b",
        ),
        3,
    ),
    (re.compile(r"^/device/unmonitoreddevices$"), 3),
    (re.compile(r"^/website/websites\b"), 3),
    (re.compile(r"^/dashboard/widgets\b"), 3),
    (re.compile(r"^/setting/collector/collectors/\d+"), 3),
    (re.compile(r"^/device/(devices|groups)/\d+/properties\b"), 3),
    (re.compile(r"^/device/devices/\d+/devicedatasources$"), 3),
    (re.compile(r"^/service/"), 3),
)


def resolve_version(path: str, explicit: int | float | str | None = None) -> int:
    """Return the API version to use for a request.

    Args:
        path: Resource path (e.g. "/device/devices").
        explicit: Caller-supplied version; wins over the rule table.

    Returns:
        The explicit version truncated to an integer, the version of the
        first matching rule, or :data:`DEFAULT_VERSION`.
    """
    if explicit is not None and explicit != "":
        return int(float(explicit))

    for pattern, version in VERSION_RULES:
        if pattern.search(path):
            return version
    return DEFAULT_VERSION
