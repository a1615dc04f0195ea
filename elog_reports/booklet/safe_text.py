from typing import Any

from markupsafe import Markup, escape


class SafeText:
    """
    User-supplied text that has already been HTML-escaped exactly once.

    The aggregator wraps every free-text field (names, titles, descriptions,
    remarks) with ``SafeText.from_raw``; templates receive it through
    ``__html__`` so Jinja2 autoescaping does not escape it a second time.
    ``str()`` also yields the escaped form, which keeps f-string use safe.
    ``raw`` is kept for consumers that never emit markup, such as file slugs.
    """

    __slots__ = ("raw", "_escaped")

    def __init__(self, raw: str, escaped: str):
        self.raw = raw
        self._escaped = escaped

    @classmethod
    def from_raw(cls, value: Any) -> "SafeText":
        text = "" if value is None else str(value)
        return cls(text, str(escape(text)))

    @classmethod
    def empty(cls) -> "SafeText":
        return cls("", "")

    def __html__(self) -> str:
        return self._escaped

    def __str__(self) -> str:
        return self._escaped

    def __repr__(self) -> str:
        return f"SafeText({self.raw!r})"

    def __bool__(self) -> bool:
        # whitespace-only values count as missing
        return bool(self.raw.strip())

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SafeText):
            return self.raw == other.raw
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.raw)

    def or_placeholder(self, placeholder: str) -> Markup:
        """Escaped value, or the escaped placeholder when the value is empty."""
        if self:
            return Markup(self._escaped)
        return escape(placeholder)
