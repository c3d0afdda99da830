"""reluri.relative
A relative reference: path, query and fragment, with no scheme or authority.

A RelativeUri is stored as an absolute URI under the placeholder prefix "reluri://_", which
lets reluri.parse do all of the grammar and encoding work. The prefix never reaches the
caller: as_str() is the only place it is removed.
"""

import copy
import functools
import logging

from typing import Any, Callable, Self

from .parse import (
    FRAGMENT_SAFE,
    PATH_SAFE,
    QUERY_SAFE,
    ParseError,
    ParsedUri,
    encode_non_ascii,
    has_scheme,
    parse_iri,
    quote_component,
    remove_dot_segments,
)
from .views import PathSegmentsMut, QueryPairsMut

_logger = logging.getLogger(__name__)

_PLACEHOLDER_SCHEME: str = "reluri"
_PLACEHOLDER_HOST: str = "_"
_PLACEHOLDER_PREFIX: str = f"{_PLACEHOLDER_SCHEME}://{_PLACEHOLDER_HOST}"


def _normalize_path(path: str) -> str:
    """Roots path at "/" and removes its dot segments."""
    if not path.startswith("/"):
        path = f"/{path}"
    return remove_dot_segments(path) or "/"


def _encode_optional(component: str | None) -> str | None:
    return None if component is None else encode_non_ascii(component)


@functools.total_ordering
class RelativeUri:
    """A path[?query][#fragment] reference.

    Parse one with RelativeUri.parse("/foo?bar=baz") (or the constructor), or start from
    RelativeUri.default(), which is the root path "/" with no query and no fragment.
    The set_* methods and the *_mut() views edit a value in place; the with_* methods
    leave it alone and return an edited copy, so they can be chained:

        RelativeUri.default()
            .with_path_segments_mut(lambda p: p.extend(["foo", "bar"]))
            .with_query_pairs_mut(lambda q: q.append_pair("foo", "bar"))
            .with_fragment("baz")

    serializes as "/foo/bar?foo=bar#baz".
    """

    __slots__ = ("_uri",)

    def __init__(self: Self, text: str = "") -> None:
        if has_scheme(text):
            _logger.debug("Rejected %r: has a scheme", text)
            raise ParseError(f"relative reference must not have a scheme: {text!r}")
        if text.startswith("//"):
            _logger.debug("Rejected %r: has an authority", text)
            raise ParseError(f"relative reference must not have an authority: {text!r}")

        synthetic: str = _PLACEHOLDER_PREFIX + ("" if text.startswith("/") else "/") + text
        try:
            uri: ParsedUri = parse_iri(synthetic)
        except ParseError as e:
            _logger.debug("Rejected %r: %s", text, e)
            raise ParseError(f"invalid relative reference: {text!r}") from e

        uri.raw_path = _normalize_path(encode_non_ascii(uri.raw_path))
        uri.raw_query = _encode_optional(uri.raw_query)
        uri.raw_fragment = _encode_optional(uri.raw_fragment)
        self._uri: ParsedUri = uri

    @classmethod
    def _wrap(cls, uri: ParsedUri) -> Self:
        result = cls.__new__(cls)
        result._uri = uri
        return result

    @classmethod
    def default(cls) -> Self:
        """The root path "/" with no query and no fragment."""
        return cls._wrap(
            ParsedUri(
                raw_scheme=_PLACEHOLDER_SCHEME,
                raw_userinfo=None,
                raw_host=_PLACEHOLDER_HOST,
                raw_port=None,
                raw_path="/",
                raw_query=None,
                raw_fragment=None,
            )
        )

    @classmethod
    def parse(cls, text: str) -> Self:
        """Parses a relative reference.

        A path that does not start with "/" is taken relative to the root and has its dot
        segments removed, so "../../foo.html" becomes "/foo.html". Non-ASCII characters are
        percent-encoded as UTF-8 and percent-escapes are capitalized.

        Raises ParseError if text has a scheme or an authority, or is not a valid reference.
        """
        return cls(text)

    def __copy__(self: Self) -> Self:
        return self._wrap(copy.copy(self._uri))

    def __str__(self: Self) -> str:
        return self.as_str()

    def __repr__(self: Self) -> str:
        return f"{self.__class__.__name__}({self.as_str()!r})"

    def __eq__(self: Self, other: object) -> bool:
        if not isinstance(other, RelativeUri):
            return NotImplemented
        return self.as_str() == other.as_str()

    def __lt__(self: Self, other: object) -> bool:
        if not isinstance(other, RelativeUri):
            return NotImplemented
        return self.as_str() < other.as_str()

    def as_str(self: Self) -> str:
        """The serialization, path[?query][#fragment]."""
        serialized: str = self._uri.serialize()[len(_PLACEHOLDER_PREFIX) :]
        # "//x" would read back as an authority; "/.//x" reads back as the path "//x".
        if serialized.startswith("//"):
            serialized = f"/.{serialized}"
        return serialized

    def path(self: Self) -> str:
        """The percent-encoded path, always starting with "/"."""
        return self._uri.raw_path

    def query(self: Self) -> str | None:
        """The raw query without "?", or None when there is none."""
        return self._uri.raw_query

    def fragment(self: Self) -> str | None:
        """The raw fragment without "#", or None when there is none."""
        return self._uri.raw_fragment

    def path_segments(self: Self) -> list[str]:
        """The percent-decoded path segments. The root path "/" has the single segment ""."""
        segments: list[str] | None = self._uri.path_segments()
        if segments is None:
            raise ValueError(f"path {self._uri.raw_path!r} is not hierarchical")
        return segments

    def query_pairs(self: Self) -> list[tuple[str, str]]:
        """The query parsed as application/x-www-form-urlencoded (key, value) pairs."""
        return self._uri.query_pairs()

    def path_segments_mut(self: Self) -> PathSegmentsMut:
        return self._uri.path_segments_mut()

    def query_pairs_mut(self: Self) -> QueryPairsMut:
        return self._uri.query_pairs_mut()

    def set_path(self: Self, path: str) -> None:
        self._uri.raw_path = _normalize_path(quote_component(path, safe=PATH_SAFE))

    def set_query(self: Self, query: str | None) -> None:
        self._uri.raw_query = None if query is None else quote_component(query, safe=QUERY_SAFE)

    def set_fragment(self: Self, fragment: str | None) -> None:
        """None removes the fragment; "" leaves a bare trailing "#"."""
        self._uri.raw_fragment = None if fragment is None else quote_component(fragment, safe=FRAGMENT_SAFE)

    def with_path(self: Self, path: str) -> Self:
        result: Self = copy.copy(self)
        result.set_path(path)
        return result

    def with_query(self: Self, query: str | None) -> Self:
        result: Self = copy.copy(self)
        result.set_query(query)
        return result

    def with_fragment(self: Self, fragment: str | None) -> Self:
        result: Self = copy.copy(self)
        result.set_fragment(fragment)
        return result

    def with_path_segments_mut(self: Self, edit: Callable[[PathSegmentsMut], Any]) -> Self:
        result: Self = copy.copy(self)
        edit(result.path_segments_mut())
        return result

    def with_query_pairs_mut(self: Self, edit: Callable[[QueryPairsMut], Any]) -> Self:
        result: Self = copy.copy(self)
        edit(result.query_pairs_mut())
        return result


def parse_relative_uri(data: str) -> RelativeUri:
    """Parses a relative reference such as "/path?query#fragment". See RelativeUri.parse."""
    return RelativeUri.parse(data)
