"""
Exceptions raised and reported by the radio parser
"""

from requests.exceptions import ConnectionError, RequestException


class RadioParserError(RequestException):
    """Base class for all radio parser errors"""


class TransportError(RadioParserError, ConnectionError):
    """The connection failed, was reset, timed out or closed unexpectedly"""


class ProtocolError(TransportError):
    """The response head could not be parsed, even after the ICY rewrite"""


class ParserClosedError(RadioParserError):
    """A request was queued on a parser that has been closed"""


def wrap_transport_error(error: BaseException, url=None) -> TransportError:
    """Wrap a low-level failure into a TransportError, chaining the original"""
    if isinstance(error, TransportError):
        return error
    detail = str(error) or type(error).__name__
    if url:
        detail = f"{url}: {detail}"
    wrapped = TransportError(detail)
    wrapped.__cause__ = error
    return wrapped
