"""
Radio Metadata Parser - "now playing" metadata from ICY radio streams
"""

__version__ = '1.0.0'

from .core.config import ConfigStore, ParserConfig, DEFAULT_CONFIG, merge_config
from .core.adapter import IcyStatusLineAdapter, rewrite_status_line
from .core.demuxer import MetadataDemuxer, parse_metadata_block
from .core.errors import RadioParserError, TransportError, ProtocolError, ParserClosedError
from .core.events import EventChannel
from .core.logger import get_logger, setup_logging
from .core.parser import RadioParser, ConnectionAttempt, Outcome, State
from .core.scheduler import RequestScheduler, ScheduledTask
from .utils.titles import split_stream_title

__all__ = [
    'RadioParser',
    'ConnectionAttempt',
    'Outcome',
    'State',
    'ConfigStore',
    'ParserConfig',
    'DEFAULT_CONFIG',
    'merge_config',
    'IcyStatusLineAdapter',
    'rewrite_status_line',
    'MetadataDemuxer',
    'parse_metadata_block',
    'RadioParserError',
    'TransportError',
    'ProtocolError',
    'ParserClosedError',
    'EventChannel',
    'RequestScheduler',
    'ScheduledTask',
    'get_logger',
    'setup_logging',
    'split_stream_title',
]
