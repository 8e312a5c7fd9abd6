"""
Command line interface for radio_metadata_parser
"""

import asyncio
import json
import logging
import sys
from datetime import datetime
from typing import Any, Dict, Mapping

import click
from dotenv import load_dotenv

from ..core.config import ParserConfig
from ..core.logger import setup_logging
from ..core.parser import RadioParser
from ..utils.titles import format_now_playing, split_stream_title


def format_json_event(url: str, metadata: Mapping[str, str]) -> str:
    """One JSON object per metadata event"""
    event = {
        'timestamp': datetime.now().isoformat(),
        'url': url,
        **split_stream_title(metadata.get('StreamTitle', '')),
        'metadata': dict(metadata),
    }
    return json.dumps(event)


async def listen(config: Dict[str, Any], once: bool = False, as_json: bool = False) -> int:
    """Run a parser until interrupted, or until the first outcome with `once`"""
    done = asyncio.Event()
    exit_code = 0
    
    parser = RadioParser(config)
    
    def on_metadata(metadata):
        if as_json:
            click.echo(format_json_event(config['url'], metadata))
        else:
            click.echo(format_now_playing(metadata))
            click.echo('-' * 50)
        if once:
            done.set()
    
    def on_empty():
        click.echo(f"No ICY metadata offered by {config['url']}", err=True)
        if once:
            done.set()
    
    def on_error(error):
        nonlocal exit_code
        click.echo(f"Error: {error}", err=True)
        if once:
            exit_code = 1
            done.set()
    
    parser.on('metadata', on_metadata)
    parser.on('empty', on_empty)
    parser.on('error', on_error)
    
    try:
        await done.wait()
    finally:
        await parser.aclose()
    return exit_code


@click.command()
@click.argument('url', envvar='RADIO_URL')
@click.option('--keep-listen/--no-keep-listen', default=False, envvar='RADIO_KEEP_LISTEN',
              help='Keep one stream connection open instead of reconnecting.')
@click.option('--auto-update/--no-auto-update', default=True, envvar='RADIO_AUTO_UPDATE',
              help='Request again after each metadata or empty outcome.')
@click.option('--error-interval', type=float, default=600, envvar='RADIO_ERROR_INTERVAL', show_default=True,
              help='Seconds to wait after a connection error.')
@click.option('--empty-interval', type=float, default=300, envvar='RADIO_EMPTY_INTERVAL', show_default=True,
              help='Seconds to wait after a stream without metadata.')
@click.option('--metadata-interval', type=float, default=5, envvar='RADIO_METADATA_INTERVAL', show_default=True,
              help='Seconds to wait after receiving metadata.')
@click.option('--connect-timeout', type=float, default=10, envvar='RADIO_CONNECT_TIMEOUT', show_default=True,
              help='Seconds allowed for connecting and reading the response head.')
@click.option('--once', is_flag=True, help='Exit after the first outcome.')
@click.option('--json', 'as_json', is_flag=True, help='Print metadata as JSON lines.')
@click.option('--log-file', type=click.Path(dir_okay=False), help='Write JSON logs to this file.')
@click.option('--friendly-log-file', type=click.Path(dir_okay=False), help='Write readable logs to this file.')
@click.option('--debug', is_flag=True, help='Log debug output to the console.')
def radio_metadata(url, keep_listen, auto_update, error_interval, empty_interval, metadata_interval,
                   connect_timeout, once, as_json, log_file, friendly_log_file, debug):
    """Print the "now playing" metadata of an ICY radio stream at URL."""
    setup_logging(log_file, friendly_log_file,
                  level=logging.DEBUG if debug else logging.INFO,
                  console=debug)
    
    config = ParserConfig(
        url=url,
        keep_listen=keep_listen,
        auto_update=auto_update,
        error_interval=error_interval,
        empty_interval=empty_interval,
        metadata_interval=metadata_interval,
        connect_timeout=connect_timeout,
    ).to_dict()
    
    try:
        exit_code = asyncio.run(listen(config, once=once, as_json=as_json))
    except KeyboardInterrupt:
        click.echo("\nStopping...", err=True)
        exit_code = 0
    sys.exit(exit_code)


def main():
    """Main entry point"""
    load_dotenv()
    radio_metadata()


if __name__ == '__main__':
    main()
