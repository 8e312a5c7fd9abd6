"""
Configuration snapshot for the radio parser
"""

from typing import Any, Dict, Mapping, Optional, Union

# Default configuration; intervals are in seconds
DEFAULT_CONFIG: Dict[str, Any] = {
    'keep_listen': False,
    'auto_update': True,
    'error_interval': 10 * 60,
    'empty_interval': 5 * 60,
    'metadata_interval': 5,
    'connect_timeout': 10,
}

# camelCase spellings accepted on input
KEY_ALIASES = {
    'keepListen': 'keep_listen',
    'autoUpdate': 'auto_update',
    'errorInterval': 'error_interval',
    'emptyInterval': 'empty_interval',
    'metadataInterval': 'metadata_interval',
    'connectTimeout': 'connect_timeout',
}


def normalize_keys(config: Mapping[str, Any]) -> Dict[str, Any]:
    """Map camelCase aliases to their snake_case names"""
    return {KEY_ALIASES.get(key, key): value for key, value in config.items()}


def merge_config(base: Mapping[str, Any], override: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Shallow-merge `override` over `base` into a new dict; override wins on conflict"""
    merged = dict(base)
    if override:
        merged.update(normalize_keys(override))
    return merged


class ParserConfig:
    """Typed view of a configuration snapshot"""
    
    def __init__(self, url: Optional[str] = None, keep_listen: bool = False, auto_update: bool = True,
                 error_interval: float = 600, empty_interval: float = 300, metadata_interval: float = 5,
                 connect_timeout: Optional[float] = 10):
        self.url = url
        self.keep_listen = keep_listen
        self.auto_update = auto_update
        self.error_interval = error_interval
        self.empty_interval = empty_interval
        self.metadata_interval = metadata_interval
        self.connect_timeout = connect_timeout
    
    @classmethod
    def from_dict(cls, config: Mapping[str, Any]) -> 'ParserConfig':
        """Create a ParserConfig from a (possibly partial) dictionary"""
        merged = merge_config(DEFAULT_CONFIG, config)
        return cls(
            url=merged.get('url'),
            keep_listen=merged['keep_listen'],
            auto_update=merged['auto_update'],
            error_interval=merged['error_interval'],
            empty_interval=merged['empty_interval'],
            metadata_interval=merged['metadata_interval'],
            connect_timeout=merged['connect_timeout'],
        )
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary"""
        return {
            'url': self.url,
            'keep_listen': self.keep_listen,
            'auto_update': self.auto_update,
            'error_interval': self.error_interval,
            'empty_interval': self.empty_interval,
            'metadata_interval': self.metadata_interval,
            'connect_timeout': self.connect_timeout,
        }


class ConfigStore:
    """Holds the current configuration snapshot.
    
    Every `set_config` call replaces the snapshot with a new dict, so a
    snapshot handed out earlier is never mutated. Values are not validated.
    """
    
    def __init__(self, config: Union[str, Mapping[str, Any], None] = None):
        self._config: Optional[Dict[str, Any]] = None
        if config is not None:
            self.set_config(config)
    
    def set_config(self, config: Union[str, Mapping[str, Any], None]) -> 'ConfigStore':
        """Merge a partial configuration over the current one (or the defaults)"""
        if isinstance(config, str):
            config = {'url': config}
        
        base = DEFAULT_CONFIG if self._config is None else self._config
        self._config = merge_config(base, config)
        return self
    
    def get_config(self, key: Optional[str] = None) -> Any:
        """Return one value by key, or the whole snapshot when no key is given"""
        config = self._config if self._config is not None else dict(DEFAULT_CONFIG)
        if key:
            return config.get(KEY_ALIASES.get(key, key))
        return config
    
    def snapshot(self) -> ParserConfig:
        return ParserConfig.from_dict(self.get_config())
