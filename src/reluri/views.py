"""reluri.views
Mutable views over the path and query of a ParsedUri.
Every method reads the ParsedUri's current path or query, edits it, writes it straight back
and returns the view, so edits chain, there is nothing to commit afterwards, and changes
made to the ParsedUri by other means while a view is open are never lost.
"""

from typing import Iterable, Iterator, Self
from urllib.parse import quote, quote_plus

from .parse import ENCODE_ERRORS, SEGMENT_SAFE, ParsedUri, decode_query_pair

# application/x-www-form-urlencoded leaves these alone on top of ALPHA / DIGIT / "-" / "." / "_"
_FORM_SAFE: str = "*"


def _form_encode(string: str) -> str:
    return quote_plus(string, safe=_FORM_SAFE, errors=ENCODE_ERRORS)


class PathSegmentsMut:
    """Edits a hierarchical path one segment at a time.

    Segments go in decoded and are percent-encoded on write, so a "/" or "?" inside a
    segment never becomes a separator. The dot segments "." and ".." are ignored.
    Iterating the view gives the same decoded segments as ParsedUri.path_segments(),
    so the root path "/" reads as [""]; the first push() onto it replaces that empty segment.
    """

    __slots__ = ("_uri",)

    def __init__(self: Self, uri: ParsedUri) -> None:
        if not uri.is_hierarchical:
            raise ValueError(f"path {uri.raw_path!r} has no segments to edit")
        self._uri: ParsedUri = uri

    def __iter__(self: Self) -> Iterator[str]:
        return iter(self._uri.path_segments() or [])

    def __len__(self: Self) -> int:
        return len(self._uri.path_segments() or [])

    def _read(self: Self) -> list[str]:
        # The root path "/" holds no segments, so the first push does not add a separator.
        path: str = self._uri.raw_path
        return path[1:].split("/") if len(path) > 1 else []

    def _write(self: Self, segments: list[str]) -> Self:
        self._uri.raw_path = "/" + "/".join(segments)
        return self

    def push(self: Self, segment: str) -> Self:
        if segment in (".", ".."):
            return self
        segments: list[str] = self._read()
        segments.append(quote(segment, safe=SEGMENT_SAFE, errors=ENCODE_ERRORS))
        return self._write(segments)

    def extend(self: Self, segments: Iterable[str]) -> Self:
        if isinstance(segments, str):
            raise TypeError("extend() takes an iterable of segments, not a single string")
        for segment in segments:
            self.push(segment)
        return self

    def pop(self: Self) -> Self:
        """Removes the last segment, if any."""
        return self._write(self._read()[:-1])

    def pop_if_empty(self: Self) -> Self:
        """Removes the last segment if it is empty, e.g. to drop a trailing slash before push()."""
        segments: list[str] = self._read()
        if segments and segments[-1] == "":
            segments.pop()
        return self._write(segments)

    def clear(self: Self) -> Self:
        """Removes every segment, leaving the root path "/"."""
        return self._write([])

    def replace(self: Self, segments: Iterable[str]) -> Self:
        self.clear()
        return self.extend(segments)


class QueryPairsMut:
    """Edits a query as a sequence of application/x-www-form-urlencoded key/value pairs.

    Opening the view makes the query present (possibly empty). Pairs already in the query
    are kept exactly as written; new keys and values are form-encoded.
    Duplicate keys are allowed and insertion order is preserved.
    """

    __slots__ = ("_uri",)

    def __init__(self: Self, uri: ParsedUri) -> None:
        self._uri: ParsedUri = uri
        self._write(self._read())

    def __iter__(self: Self) -> Iterator[tuple[str, str]]:
        return iter(self._uri.query_pairs())

    def __len__(self: Self) -> int:
        return len(self._uri.query_pairs())

    def _read(self: Self) -> list[str]:
        query: str | None = self._uri.raw_query
        return query.split("&") if query else []

    def _write(self: Self, pieces: list[str]) -> Self:
        self._uri.raw_query = "&".join(pieces)
        return self

    def append_pair(self: Self, key: str, value: str) -> Self:
        return self._write(self._read() + [f"{_form_encode(key)}={_form_encode(value)}"])

    def append_key_only(self: Self, key: str) -> Self:
        return self._write(self._read() + [_form_encode(key)])

    def extend_pairs(self: Self, pairs: Iterable[tuple[str, str]]) -> Self:
        for key, value in pairs:
            self.append_pair(key, value)
        return self

    def remove(self: Self, key: str) -> Self:
        """Removes every pair whose decoded key is key."""
        return self._write([piece for piece in self._read() if not piece or decode_query_pair(piece)[0] != key])

    def clear(self: Self) -> Self:
        """Removes every pair, leaving an empty (but present) query."""
        return self._write([])
