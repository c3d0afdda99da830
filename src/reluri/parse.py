"""reluri.parse
RFC 3986 / RFC 3987 parsing and serialization of URIs.
This is the lexical layer RelativeUri is built on: grammar matching, percent-encoding
normalization, dot-segment removal and the structured ParsedUri record.
"""

import dataclasses
import re

from typing import TYPE_CHECKING, Iterable, Self
from urllib.parse import quote, unquote, unquote_plus

if TYPE_CHECKING:
    from .views import PathSegmentsMut, QueryPairsMut


class ParseError(ValueError):
    """Raised when a string does not match the grammar it was parsed against."""


# Each of these ABNF rules is from RFC 3986, 3987, or 5234.

# ALPHA = %x41-5A / %x61-7A
_ALPHA: str = r"[A-Za-z]"

# DIGIT = %x30-39
_DIGIT: str = r"[0-9]"

# HEXDIG = DIGIT / "A" / "B" / "C" / "D" / "E" / "F"
_HEXDIG: str = r"[0-9A-Fa-f]"

# pct-encoded = "%" HEXDIG HEXDIG
_PCT_ENCODED: str = rf"%{_HEXDIG}{_HEXDIG}"

# sub-delims = "!" / "$" / "&" / "'" / "(" / ")" / "*" / "+" / "," / ";" / "="
_SUB_DELIMS: str = r"[!$&'()*+,;=]"

# unreserved = ALPHA / DIGIT / "-" / "." / "_" / "~"
_UNRESERVED: str = r"[A-Za-z0-9\-._~]"

# ucschar = %xA0-D7FF / %xF900-FDCF / %xFDF0-FFEF
#         / %x10000-1FFFD / %x20000-2FFFD / ... / %xD0000-DFFFD / %xE1000-EFFFD
_UCSCHAR: str = "[\xa0-\ud7ff\uf900-\ufdcf\ufdf0-\uffef\U00010000-\U0001FFFD\U00020000-\U0002FFFD\U00030000-\U0003FFFD\U00040000-\U0004FFFD\U00050000-\U0005FFFD\U00060000-\U0006FFFD\U00070000-\U0007FFFD\U00080000-\U0008FFFD\U00090000-\U0009FFFD\U000A0000-\U000AFFFD\U000B0000-\U000BFFFD\U000C0000-\U000CFFFD\U000D0000-\U000DFFFD\U000E1000-\U000EFFFD]"

# iprivate = %xE000-F8FF / %xF0000-FFFFD / %x100000-10FFFD
_IPRIVATE: str = "[\ue000-\uf8ff\U000F0000-\U000FFFFD\U00100000-\U0010FFFD]"

# iunreserved = ALPHA / DIGIT / "-" / "." / "_" / "~" / ucschar
_IUNRESERVED: str = rf"(?:{_UNRESERVED}|{_UCSCHAR})"

# scheme = ALPHA *( ALPHA / DIGIT / "+" / "-" / "." )
_SCHEME: str = rf"{_ALPHA}[A-Za-z0-9+\-.]*"

# dec-octet = DIGIT / %x31-39 DIGIT / "1" 2DIGIT / "2" %x30-34 DIGIT / "25" %x30-35
_DEC_OCTET: str = rf"(?:25[0-5]|2[0-4]{_DIGIT}|1{_DIGIT}{{2}}|[1-9]{_DIGIT}|{_DIGIT})"

# IPv4address = dec-octet "." dec-octet "." dec-octet "." dec-octet
_IPV4ADDRESS: str = rf"{_DEC_OCTET}(?:\.{_DEC_OCTET}){{3}}"


def _compile(unreserved: str, private: str | None) -> tuple[re.Pattern[str], re.Pattern[str]]:
    """Builds the (absolute, relative-ref) pattern pair over the given unreserved class.
    URIs and IRIs differ only in unreserved (iunreserved adds ucschar) and query (iquery adds iprivate).
    """
    # pchar = unreserved / pct-encoded / sub-delims / ":" / "@"
    pchar: str = rf"(?:{unreserved}|{_PCT_ENCODED}|{_SUB_DELIMS}|[:@])"

    # segment = *pchar
    # segment-nz = 1*pchar
    # segment-nz-nc = 1*( unreserved / pct-encoded / sub-delims / "@" )
    segment: str = rf"{pchar}*"
    segment_nz: str = rf"{pchar}+"
    segment_nz_nc: str = rf"(?:{unreserved}|{_PCT_ENCODED}|{_SUB_DELIMS}|@)+"

    # userinfo = *( unreserved / pct-encoded / sub-delims / ":" )
    userinfo: str = rf"(?P<userinfo>(?:{unreserved}|{_PCT_ENCODED}|{_SUB_DELIMS}|:)*)"

    # host = IPv4address / reg-name
    # reg-name = *( unreserved / pct-encoded / sub-delims )
    host: str = rf"(?P<host>{_IPV4ADDRESS}|(?:{unreserved}|{_PCT_ENCODED}|{_SUB_DELIMS})*)"

    # authority = [ userinfo "@" ] host [ ":" port ]
    # port = *DIGIT
    authority: str = rf"(?:{userinfo}@)?{host}(?::(?P<port>{_DIGIT}*))?"

    # path-abempty  = *( "/" segment )
    # path-absolute = "/" [ segment-nz *( "/" segment ) ]
    # path-rootless = segment-nz *( "/" segment )
    # path-noscheme = segment-nz-nc *( "/" segment )
    # path-empty    = 0<pchar>
    path_abempty: str = rf"(?P<path_abempty>(?:/{segment})*)"
    path_absolute: str = rf"(?P<path_absolute>/(?:{segment_nz}(?:/{segment})*)?)"
    path_rootless: str = rf"(?P<path_rootless>{segment_nz}(?:/{segment})*)"
    path_noscheme: str = rf"(?P<path_noscheme>{segment_nz_nc}(?:/{segment})*)"
    path_empty: str = r"(?P<path_empty>)"

    # query    = *( pchar / "/" / "?" )
    # iquery   = *( ipchar / iprivate / "/" / "?" )
    # fragment = *( pchar / "/" / "?" )
    query_atom: str = rf"{pchar}|{private}|[/?]" if private is not None else rf"{pchar}|[/?]"
    tail: str = rf"(?:\?(?P<query>(?:{query_atom})*))?(?:#(?P<fragment>(?:{pchar}|[/?])*))?\Z"

    # hier-part     = "//" authority path-abempty / path-absolute / path-rootless / path-empty
    # relative-part = "//" authority path-abempty / path-absolute / path-noscheme / path-empty
    hier_part: str = rf"(?://{authority}{path_abempty}|{path_absolute}|{path_rootless}|{path_empty})"
    relative_part: str = rf"(?://{authority}{path_abempty}|{path_absolute}|{path_noscheme}|{path_empty})"

    # URI          = scheme ":" hier-part [ "?" query ] [ "#" fragment ]
    # relative-ref = relative-part [ "?" query ] [ "#" fragment ]
    return (
        re.compile(rf"\A(?P<scheme>{_SCHEME}):{hier_part}{tail}"),
        re.compile(rf"\A{relative_part}{tail}"),
    )


_URI_PAT, _RELATIVE_REF_PAT = _compile(_UNRESERVED, None)
_IRI_PAT, _IRELATIVE_REF_PAT = _compile(_IUNRESERVED, _IPRIVATE)

_SCHEME_PREFIX_PAT: re.Pattern[str] = re.compile(rf"\A{_SCHEME}:")
_PCT_ENCODED_PAT: re.Pattern[str] = re.compile(_PCT_ENCODED)
_NON_ASCII_PAT: re.Pattern[str] = re.compile(r"[^\x00-\x7f]+")

# Characters that may appear unescaped in each component, beyond the unreserved set
# that urllib.parse.quote always leaves alone.
SEGMENT_SAFE: str = "!$&'()*+,;=:@"
PATH_SAFE: str = f"{SEGMENT_SAFE}/"
QUERY_SAFE: str = f"{SEGMENT_SAFE}/?"
FRAGMENT_SAFE: str = f"{SEGMENT_SAFE}/?"

# Lone surrogates cannot be encoded as UTF-8 strictly; they are written as the bytes "surrogatepass"
# produces so that no str is ever rejected. Decoding uses urllib.parse.unquote's "replace".
ENCODE_ERRORS: str = "surrogatepass"


@dataclasses.dataclass
class ParsedUri:
    """A parsed URI or relative reference. Build these with one of the parse_* functions."""

    raw_scheme: str | None
    raw_userinfo: str | None
    raw_host: str | None
    raw_port: str | None
    raw_path: str
    raw_query: str | None
    raw_fragment: str | None

    @property
    def scheme(self: Self) -> str | None:
        return self.raw_scheme

    @property
    def userinfo(self: Self) -> str | None:
        return self.raw_userinfo

    @property
    def host(self: Self) -> str | None:
        return self.raw_host

    @property
    def port(self: Self) -> int | None:
        if self.raw_port is not None and len(self.raw_port) > 0:
            return int(self.raw_port, base=10)
        return None

    @property
    def path(self: Self) -> str:
        return self.raw_path

    @property
    def query(self: Self) -> str | None:
        return self.raw_query

    @property
    def fragment(self: Self) -> str | None:
        return self.raw_fragment

    @property
    def authority(self: Self) -> str | None:
        """userinfo@host:port"""
        if self.raw_host is None:
            return None
        result: str = ""
        if self.raw_userinfo is not None:
            result += f"{self.raw_userinfo}@"
        result += self.raw_host
        if self.raw_port is not None:
            result += f":{self.raw_port}"
        return result

    @property
    def is_hierarchical(self: Self) -> bool:
        """True when the path can be edited segment by segment."""
        return self.raw_host is not None or self.raw_path.startswith("/")

    def serialize(self: Self) -> str:
        """Direct translation of RFC 3986 section 5.3"""
        result: str = ""
        if self.raw_scheme is not None:
            result += f"{self.raw_scheme}:"
        if self.authority is not None:
            result += f"//{self.authority}"
        result += self.raw_path
        if self.raw_query is not None:
            result += f"?{self.raw_query}"
        if self.raw_fragment is not None:
            result += f"#{self.raw_fragment}"
        return result

    def path_segments(self: Self) -> list[str] | None:
        """The percent-decoded path segments, or None for a non-hierarchical path.
        The root path "/" has the single segment "".
        """
        if not self.is_hierarchical:
            return None
        return [unquote(segment) for segment in self.raw_path[1:].split("/")]

    def query_pairs(self: Self) -> list[tuple[str, str]]:
        """The query parsed as application/x-www-form-urlencoded. Empty pieces are skipped."""
        if self.raw_query is None:
            return []
        return [decode_query_pair(piece) for piece in self.raw_query.split("&") if piece]

    def path_segments_mut(self: Self) -> "PathSegmentsMut":
        from .views import PathSegmentsMut

        return PathSegmentsMut(self)

    def query_pairs_mut(self: Self) -> "QueryPairsMut":
        from .views import QueryPairsMut

        return QueryPairsMut(self)


def capitalize_percent_encodings(string: str) -> str:
    """Returns string with all percent-encoded sequences expressed in capital letters.
    e.g. capitalize_percent_encodings("example%2ecom") == "example%2Ecom"
    """
    return _PCT_ENCODED_PAT.sub(lambda m: m[0].upper(), string)


def quote_component(string: str, safe: str) -> str:
    """Percent-encodes every character of string outside safe and the unreserved set.
    Valid escapes already in string are kept (in capitals); a "%" that starts no escape becomes "%25".
    """
    result: list[str] = []
    pos: int = 0
    for m in _PCT_ENCODED_PAT.finditer(string):
        result.append(quote(string[pos : m.start()], safe=safe, errors=ENCODE_ERRORS))
        result.append(m[0].upper())
        pos = m.end()
    result.append(quote(string[pos:], safe=safe, errors=ENCODE_ERRORS))
    return "".join(result)


def encode_non_ascii(string: str) -> str:
    """Converts an IRI component to a URI component by percent-encoding its non-ASCII characters as UTF-8."""
    return _NON_ASCII_PAT.sub(lambda m: quote(m[0], safe="", errors=ENCODE_ERRORS), string)


def decode_query_pair(piece: str) -> tuple[str, str]:
    """Splits one "key=value" piece of a form-encoded query and decodes both halves."""
    key, _, value = piece.partition("=")
    return unquote_plus(key), unquote_plus(value)


def has_scheme(string: str) -> bool:
    """True when string begins with "scheme:"."""
    return _SCHEME_PREFIX_PAT.match(string) is not None


def _parse(data: str, pattern: re.Pattern[str], grammar: str, path_kinds: Iterable[str]) -> ParsedUri:
    m: re.Match[str] | None = pattern.match(data)
    if m is None:
        raise ParseError(f"{data!r} is not a valid {grammar}")

    # Relative references have no scheme group.
    scheme: str | None = m.groupdict().get("scheme")
    if scheme is not None:
        scheme = scheme.lower()

    userinfo: str | None = m["userinfo"]
    if userinfo is not None:
        userinfo = capitalize_percent_encodings(userinfo)

    host: str | None = m["host"]
    if host is not None:
        if host.isascii():
            host = host.lower()
        host = capitalize_percent_encodings(host)

    port: str | None = m["port"]
    if port:
        port = str(int(port))

    query: str | None = m["query"]
    if query is not None:
        query = capitalize_percent_encodings(query)

    fragment: str | None = m["fragment"]
    if fragment is not None:
        fragment = capitalize_percent_encodings(fragment)

    return ParsedUri(
        raw_scheme=scheme,
        raw_userinfo=userinfo,
        raw_host=host,
        raw_port=port,
        raw_path=capitalize_percent_encodings(m[next(pk for pk in path_kinds if m[pk] is not None)]),
        raw_query=query,
        raw_fragment=fragment,
    )


_URI_PATH_KINDS: tuple[str, ...] = ("path_abempty", "path_absolute", "path_empty", "path_rootless")
_RELATIVE_REF_PATH_KINDS: tuple[str, ...] = ("path_abempty", "path_absolute", "path_empty", "path_noscheme")


def parse_uri(data: str) -> ParsedUri:
    """RFC 3986-compliant URI parser, for ASCII-only input such as "http://example.org/path?query#fragment"."""
    return _parse(data, _URI_PAT, "URI", _URI_PATH_KINDS)


def parse_iri(data: str) -> ParsedUri:
    """RFC 3987-compliant IRI parser, for input that may contain non-ASCII characters."""
    return _parse(data, _IRI_PAT, "IRI", _URI_PATH_KINDS)


def parse_relative_ref(data: str) -> ParsedUri:
    """RFC 3986-compliant relative-ref parser, for ASCII-only input such as "//example.org/path?query#fragment"."""
    return _parse(data, _RELATIVE_REF_PAT, "relative reference", _RELATIVE_REF_PATH_KINDS)


def parse_irelative_ref(data: str) -> ParsedUri:
    """RFC 3987-compliant irelative-ref parser."""
    return _parse(data, _IRELATIVE_REF_PAT, "IRI relative reference", _RELATIVE_REF_PATH_KINDS)


def remove_dot_segments(path: str) -> str:
    """Implementation of the "remove_dot_segments" routine from RFC 3986 section 5.2.4"""
    output: list[str] = []
    while len(path) > 0:
        if path.startswith(("../", "./")):
            _, _, path = path.partition("/")
        elif path.startswith("/./") or path == "/.":
            path = f"/{path[len('/./') :]}"
        elif path.startswith("/../") or path == "/..":
            path = f"/{path[len('/../') :]}"
            if output:
                output.pop()
        elif path in (".", ".."):
            path = ""
        else:
            end: int = path.find("/", 1)
            if end == -1:
                end = len(path)
            output.append(path[:end])
            path = path[end:]
    return "".join(output)
