import sys
from pathlib import Path

import pytest

# Add project root and the tests directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from resopt.ids import RemapTable  # noqa: E402


@pytest.fixture
def remap_table():
    """Remap table of the umbrella + styleable scenario."""
    return RemapTable({
        # Remap all 4 items in the first array
        0x7f010000: 0x7f010010,
        0x7f010001: 0x7f010011,
        0x7f010002: 0x7f010012,
        0x7f010003: 0x7f010013,
        # Keep the first two of the second array, delete the last two
        0x7f020000: 0x7f020000,
        0x7f020001: 0x7f020001,
        # Keep the first of the third array, delete the last
        0x7f030000: 0x7f030000,
        # Styleable: delete the first, keep the last
        0x7f040001: 0x7f040001,
    })
