"""
ICY status line rewriting.

SHOUTcast-style servers answer with ``ICY 200 OK`` instead of an HTTP version
token, which strict HTTP status-line parsing rejects. The adapter rewrites the
first received chunk of a connection so that it starts with ``HTTP/1.0`` and
then gets out of the way for the rest of the connection.
"""

import asyncio
from typing import Optional

ICY_TOKEN = b'icy'
HTTP10 = b'HTTP/1.0'


def rewrite_status_line(chunk: bytes) -> bytes:
    """Replace a leading ``ICY`` (any case) with ``HTTP/1.0``; other chunks are returned as is"""
    if chunk[:len(ICY_TOKEN)].lower() == ICY_TOKEN:
        return HTTP10 + chunk[len(ICY_TOKEN):]
    return chunk


class IcyStatusLineAdapter:
    """One-shot byte transform: rewrites the first chunk it sees, passes everything after it"""
    
    def __init__(self):
        self.done = False
        self.rewritten = False
    
    def feed(self, chunk: bytes) -> bytes:
        if self.done:
            return chunk
        self.done = True
        
        result = rewrite_status_line(chunk)
        self.rewritten = result is not chunk
        return result


class IcyStreamReaderProtocol(asyncio.StreamReaderProtocol):
    """StreamReaderProtocol that runs incoming bytes through the adapter before the reader sees them"""
    
    def __init__(self, stream_reader: asyncio.StreamReader, adapter: Optional[IcyStatusLineAdapter] = None, **kwargs):
        super().__init__(stream_reader, **kwargs)
        self.adapter = adapter or IcyStatusLineAdapter()
    
    def data_received(self, data: bytes) -> None:
        # Empty reads carry no status line; keep the adapter armed for the first real chunk
        if data and not self.adapter.done:
            data = self.adapter.feed(data)
        super().data_received(data)
