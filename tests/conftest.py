"""Pytest configuration and shared fixtures for radio_metadata_parser tests."""
import sys
from pathlib import Path

import pytest

# Add project root to Python path for imports
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from tests.icy_fakes import build_icy_payload


@pytest.fixture
def icy_payload() -> bytes:
    """16000 audio bytes followed by one StreamTitle frame."""
    return build_icy_payload(16000, {"StreamTitle": "Song - Artist"})
