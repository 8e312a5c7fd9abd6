"""
ICY-over-HTTP request and response handling.

Requests are prepared with ``requests`` and written by hand over an asyncio
connection whose first received chunk goes through the ICY status line
adapter, so the response head is parsed as plain HTTP afterwards.
"""

import asyncio
from typing import AsyncIterator, Optional, Tuple
from urllib.parse import urlsplit

import requests
from requests.exceptions import InvalidSchema, InvalidURL
from requests.structures import CaseInsensitiveDict

from .adapter import IcyStatusLineAdapter, IcyStreamReaderProtocol
from .errors import ProtocolError, wrap_transport_error
from .logger import get_logger

logger = get_logger(__name__)

USER_AGENT = 'Mozilla'
DEFAULT_PORTS = {'http': 80, 'https': 443}
HEAD_TERMINATOR = b'\r\n\r\n'
HEAD_LIMIT = 64 * 1024
READ_SIZE = 8192


def build_request(url: str) -> requests.PreparedRequest:
    """Prepare the GET request asking the server for in-band metadata"""
    request = requests.Request('GET', url, headers={
        'Icy-MetaData': '1',
        'User-Agent': USER_AGENT,
    })
    prepared = request.prepare()
    
    scheme = urlsplit(prepared.url).scheme.lower()
    if scheme not in DEFAULT_PORTS:
        raise InvalidSchema(f"Unsupported URL scheme {scheme!r} in {url!r}")
    return prepared


def request_target(prepared: requests.PreparedRequest) -> Tuple[str, str, int]:
    """Return (scheme, host, port) of a prepared request"""
    parts = urlsplit(prepared.url)
    scheme = parts.scheme.lower()
    try:
        port = parts.port or DEFAULT_PORTS[scheme]
    except ValueError as e:
        raise InvalidURL(f"Invalid port in {prepared.url!r}") from e
    if not parts.hostname:
        raise InvalidURL(f"No host in {prepared.url!r}")
    return scheme, parts.hostname, port


def serialize_request(prepared: requests.PreparedRequest) -> bytes:
    """Render the request as HTTP/1.0 so servers never answer with chunked encoding"""
    scheme, host, port = request_target(prepared)
    if ':' in host:
        host = f"[{host}]"
    if port != DEFAULT_PORTS[scheme]:
        host = f"{host}:{port}"
    
    lines = [f"GET {prepared.path_url} HTTP/1.0", f"Host: {host}"]
    lines.extend(f"{key}: {value}" for key, value in prepared.headers.items())
    lines.append("Connection: close")
    return ("\r\n".join(lines) + "\r\n\r\n").encode('latin-1')


def parse_response_head(head: bytes) -> Tuple[str, int, str, CaseInsensitiveDict]:
    """Parse a status line and header block.
    
    The status line must carry an ``HTTP/`` version token; ICY servers only pass
    because the adapter rewrote their status line before it got here. SHOUTcast
    header lines without a space after the colon are accepted.
    """
    lines = head.decode('latin-1').splitlines()
    status_line = lines[0] if lines else ''
    
    parts = status_line.split(None, 2)
    if len(parts) < 2 or not parts[0].startswith('HTTP/'):
        raise ProtocolError(f"Malformed status line {status_line!r}")
    version = parts[0]
    try:
        status = int(parts[1])
    except ValueError:
        raise ProtocolError(f"Malformed status code in {status_line!r}") from None
    if status < 100 or status > 999:
        raise ProtocolError(f"Malformed status code in {status_line!r}")
    reason = parts[2] if len(parts) > 2 else ''
    
    headers = CaseInsensitiveDict()
    for line in lines[1:]:
        key, sep, value = line.partition(':')
        if not sep or not key.strip():
            continue
        headers[key.strip()] = value.strip()
    
    return version, status, reason, headers


def parse_metaint(value: Optional[str]) -> Optional[int]:
    """Byte interval from an ``icy-metaint`` value, or None when absent or not a positive integer"""
    if value is None:
        return None
    try:
        metaint = int(str(value).strip())
    except ValueError:
        return None
    return metaint if metaint > 0 else None


class IcyResponse:
    """An open ICY/HTTP response whose body has not been consumed yet"""
    
    def __init__(self, url: str, version: str, status: int, reason: str, headers: CaseInsensitiveDict,
                 reader: asyncio.StreamReader, writer: asyncio.StreamWriter,
                 adapter: Optional[IcyStatusLineAdapter] = None):
        self.url = url
        self.version = version
        self.status = status
        self.reason = reason
        self.headers = headers
        self.reader = reader
        self.writer = writer
        self.adapter = adapter
        self._destroyed = False
    
    @property
    def metaint(self) -> Optional[int]:
        return parse_metaint(self.headers.get('icy-metaint'))
    
    @property
    def is_icy(self) -> bool:
        """True when the server answered with an ICY status line"""
        return bool(self.adapter and self.adapter.rewritten)
    
    @property
    def destroyed(self) -> bool:
        return self._destroyed
    
    def destroy(self) -> None:
        """Forcibly close the connection"""
        if self._destroyed:
            return
        self._destroyed = True
        self.writer.transport.abort()
        logger.debug("Response destroyed", url=self.url)
    
    async def iter_chunks(self, size: int = READ_SIZE) -> AsyncIterator[bytes]:
        """Yield body chunks as they arrive until EOF or until the response is destroyed"""
        while not self._destroyed:
            chunk = await self.reader.read(size)
            if not chunk:
                return
            yield chunk


async def _open(prepared: requests.PreparedRequest) -> IcyResponse:
    scheme, host, port = request_target(prepared)
    loop = asyncio.get_running_loop()
    
    reader = asyncio.StreamReader(limit=HEAD_LIMIT)
    protocol = IcyStreamReaderProtocol(reader)
    transport, _ = await loop.create_connection(
        lambda: protocol, host, port,
        ssl=True if scheme == 'https' else None,
    )
    writer = asyncio.StreamWriter(transport, protocol, reader, loop)
    
    try:
        writer.write(serialize_request(prepared))
        await writer.drain()
        
        try:
            head = await reader.readuntil(HEAD_TERMINATOR)
        except asyncio.IncompleteReadError as e:
            raise ProtocolError(f"Connection closed before the response head was complete ({len(e.partial)} bytes)") from e
        except asyncio.LimitOverrunError as e:
            raise ProtocolError(f"Response head larger than {HEAD_LIMIT} bytes") from e
        
        version, status, reason, headers = parse_response_head(head[:-len(HEAD_TERMINATOR)])
    except BaseException:
        transport.abort()
        raise
    
    return IcyResponse(prepared.url, version, status, reason, headers, reader, writer, protocol.adapter)


async def open_icy_connection(url: str, timeout: Optional[float] = None) -> IcyResponse:
    """Connect to `url`, send the ICY metadata request and read the response head.
    
    Every failure is raised as a TransportError (or its ProtocolError subclass)
    with the original exception chained.
    """
    try:
        prepared = build_request(url)
        logger.debug("Opening connection", url=prepared.url, headers=dict(prepared.headers))
        return await asyncio.wait_for(_open(prepared), timeout)
    except asyncio.TimeoutError as e:
        # Socket-level timeouts carry a message, the wait_for deadline does not
        if timeout is None or str(e):
            raise wrap_transport_error(e, url)
        raise wrap_transport_error(TimeoutError(f"No response head within {timeout} seconds"), url) from e
    except (requests.RequestException, OSError, asyncio.IncompleteReadError, asyncio.LimitOverrunError) as e:
        raise wrap_transport_error(e, url)
