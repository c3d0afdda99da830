__version__ = "0.1"

import logging

from .parse import ParsedUri, ParseError, parse_irelative_ref, parse_iri, parse_relative_ref, parse_uri, remove_dot_segments
from .relative import RelativeUri, parse_relative_uri
from .views import PathSegmentsMut, QueryPairsMut

logging.getLogger(__name__).addHandler(logging.NullHandler())
