"""
Helpers for presenting ICY metadata
"""

from typing import Dict, Mapping


def split_stream_title(title: str) -> Dict[str, str]:
    """Split a ``StreamTitle`` value of the form "Artist - Title".
    
    Without a " - " separator the whole value is the title.
    """
    result = {'artist': '', 'title': ''}
    if not title:
        return result
    cleaned_title = title.strip().rstrip('-').strip()
    # Split on the first occurrence of ' - '
    if ' - ' in cleaned_title:
        artist, song_title = cleaned_title.split(' - ', 1)
        result['artist'] = artist.strip()
        result['title'] = song_title.strip()
    else:
        result['title'] = cleaned_title
    return result


def format_field_label(key: str) -> str:
    # StreamUrl -> "Stream url:", stream_url -> "Stream url:"
    spaced = ''.join(f" {c}" if c.isupper() and i else c for i, c in enumerate(key))
    return spaced.replace('_', ' ').strip().capitalize() + ':'


def format_now_playing(metadata: Mapping[str, str]) -> str:
    """Render a metadata mapping as a friendly "Now Playing" block"""
    now_playing = split_stream_title(metadata.get('StreamTitle', ''))
    lines = [
        "\U0001F3B5 Now Playing:",
        f"   Artist: {now_playing['artist'] or 'Unknown'}",
        f"   Title: {now_playing['title'] or 'Unknown'}",
    ]
    for key, value in metadata.items():
        if key == 'StreamTitle' or not value:
            continue
        lines.append(f"   {format_field_label(key)} {value}")
    return "\n".join(lines)
