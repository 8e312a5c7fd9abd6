"""
Splits an ICY response body into audio bytes and metadata frames.

Every `metaint` audio bytes the server inserts one length byte L followed by
L * 16 bytes of NUL-padded text such as ``StreamTitle='Artist - Song';``.
L = 0 means the interval carries no metadata.
"""

import re
from typing import Dict

from .events import EventChannel, Listener
from .logger import get_logger

logger = get_logger(__name__)

AUDIO, LENGTH, META = 'audio', 'length', 'meta'

METADATA_BLOCK_SIZE = 16

_meta_pair = re.compile(r"(\w[^=;']*)='(.*?)'(?:;|$)", re.DOTALL)


def parse_metadata_block(block: bytes) -> Dict[str, str]:
    """Parse a NUL-padded ``Key='Value';`` metadata frame into a dict"""
    raw = block.rstrip(b'\x00')
    try:
        text = raw.decode('utf-8')
    except UnicodeDecodeError:
        text = raw.decode('latin-1')
    return {key.strip(): value for key, value in _meta_pair.findall(text)}


class MetadataDemuxer:
    """Incremental demuxer for an ICY byte stream.
    
    Feed it response chunks of any size; partial frames are buffered until the
    rest arrives. Events:
    
    - ``audio(bytes)``: audio bytes with length bytes and frames removed
    - ``metadata(dict)``: one decoded frame
    - ``end()``: the demuxer was closed, no more events follow
    """
    
    def __init__(self, metaint: int):
        metaint = int(metaint)
        if metaint <= 0:
            raise ValueError(f"metaint must be a positive integer, got {metaint}")
        
        self.metaint = metaint
        self.events = EventChannel(('audio', 'metadata', 'end'))
        self.audio_bytes = 0
        self.metadata_count = 0
        
        self._mode = AUDIO
        self._remaining = metaint
        self._frame = bytearray()
        self._closed = False
    
    def on(self, event: str, listener: Listener) -> Listener:
        return self.events.on(event, listener)
    
    def once(self, event: str, listener: Listener) -> Listener:
        return self.events.once(event, listener)
    
    def off(self, event: str, listener: Listener) -> None:
        self.events.off(event, listener)
    
    @property
    def closed(self) -> bool:
        return self._closed
    
    def _start_audio(self):
        self._mode = AUDIO
        self._remaining = self.metaint
    
    def feed(self, data: bytes) -> None:
        """Consume one chunk of the response body"""
        offset = 0
        size = len(data)
        
        while offset < size and not self._closed:
            if self._mode == AUDIO:
                take = min(self._remaining, size - offset)
                audio = bytes(data[offset:offset + take])
                offset += take
                self._remaining -= take
                self.audio_bytes += take
                if self._remaining == 0:
                    self._mode = LENGTH
                self.events.emit('audio', audio)
            
            elif self._mode == LENGTH:
                length = data[offset] * METADATA_BLOCK_SIZE
                offset += 1
                if length:
                    self._mode = META
                    self._remaining = length
                    self._frame.clear()
                else:
                    self._start_audio()
            
            else:
                take = min(self._remaining, size - offset)
                self._frame += data[offset:offset + take]
                offset += take
                self._remaining -= take
                if self._remaining == 0:
                    metadata = parse_metadata_block(bytes(self._frame))
                    self._frame.clear()
                    self._start_audio()
                    self.metadata_count += 1
                    logger.debug("Metadata frame decoded", metadata=metadata)
                    self.events.emit('metadata', metadata)
    
    def close(self) -> None:
        """Stop processing input and emit ``end`` once"""
        if self._closed:
            return
        self._closed = True
        self._frame.clear()
        self.events.emit('end')
