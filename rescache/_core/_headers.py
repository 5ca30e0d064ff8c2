from __future__ import annotations

from typing import (
    Any,
    Iterator,
    List,
    Mapping,
    MutableMapping,
    Optional,
    Union,
)


class Headers(MutableMapping[str, str]):
    """
    Case-insensitive, multi-valued header mapping.

    Reading a header joins its values with ", ", writing a header appends
    a new value.
    """

    def __init__(self, headers: Mapping[str, Union[str, List[str]]]) -> None:
        self._headers = {k.lower(): ([v] if isinstance(v, str) else v[:]) for k, v in headers.items()}

    def get_list(self, key: str) -> Optional[List[str]]:
        return self._headers.get(key.lower(), None)

    def copy(self) -> "Headers":
        return Headers(self._headers)

    def __getitem__(self, key: str) -> str:
        return ", ".join(self._headers[key.lower()])

    def __setitem__(self, key: str, value: str) -> None:
        self._headers.setdefault(key.lower(), []).append(value)

    def __delitem__(self, key: str) -> None:
        del self._headers[key.lower()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._headers)

    def __len__(self) -> int:
        return len(self._headers)

    def __repr__(self) -> str:
        return repr(self._headers)

    def __str__(self) -> str:
        return str(self._headers)

    def __eq__(self, other_headers: Any) -> bool:
        return isinstance(other_headers, Headers) and self._headers == other_headers._headers  # type: ignore


def parse_accept(accept_value: str) -> List[str]:
    """
    Return the media ranges listed in an Accept header, without parameters.

    Examples:
        >>> parse_accept("text/html,application/xhtml+xml;q=0.9, */*;q=0.8")
        ['text/html', 'application/xhtml+xml', '*/*']
        >>> parse_accept("")
        []
    """
    media_ranges = []
    for part in accept_value.split(","):
        media_range = part.split(";", 1)[0].strip().lower()
        if media_range:
            media_ranges.append(media_range)
    return media_ranges
