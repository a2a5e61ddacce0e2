"""Small helpers shared by the migration runner."""

from __future__ import annotations

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit


class MultiError(Exception):
    """Several errors reported as one; ``None`` entries are dropped."""

    def __init__(self, *args: BaseException | None) -> None:
        self.errors = [err for err in args if err is not None]
        super().__init__(*self.errors)

    def __str__(self) -> str:
        return " and ".join(text for text in map(str, self.errors) if text)


def filter_custom_query(url: str) -> str:
    """Return ``url`` without query parameters whose names start with ``x-``.

    The remaining parameters are re-encoded sorted by name.
    """
    parts = urlsplit(url)
    pairs = parse_qsl(parts.query, keep_blank_values=True)
    kept = sorted(
        ((key, value) for key, value in pairs if not key.startswith("x-")),
        key=lambda pair: pair[0],
    )
    return urlunsplit(parts._replace(query=urlencode(kept)))