"""dnstrace package"""

from .errors import (
    DepthExceededError,
    NoAuthorityProvidedError,
    RecordDecodeError,
    ResolutionError,
    TransportError,
    UnexpectedRecordTypeError,
    UnknownRecordTypeError,
)
from .records import Record, RecordType, Response, Server
from .resolver import Resolver, lookup, lookup_rdns
from .root_servers import RootServerRotator

__all__ = [
    "DepthExceededError",
    "NoAuthorityProvidedError",
    "Record",
    "RecordDecodeError",
    "RecordType",
    "ResolutionError",
    "Resolver",
    "Response",
    "RootServerRotator",
    "Server",
    "TransportError",
    "UnexpectedRecordTypeError",
    "UnknownRecordTypeError",
    "lookup",
    "lookup_rdns",
]
