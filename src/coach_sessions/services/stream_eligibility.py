"""Heuristics for activities that can never expose streams."""

from collections.abc import Mapping

_LINKAGE_FIELDS = ("external_id", "upload_id")


def is_likely_streamless(payload: object) -> bool:
    """Return true when a Strava activity payload has no device upload.

    Manually entered activities carry neither an `external_id` nor an
    `upload_id`, and Strava has no streams for them. A missing payload is not
    evidence either way.
    """
    if not isinstance(payload, Mapping):
        return False
    return all(payload.get(name) is None for name in _LINKAGE_FIELDS)
