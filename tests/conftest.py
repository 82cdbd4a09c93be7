import sys
from pathlib import Path

# Ensure the top-level modules import in tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest


class FixedDraws:
    """Stands in for ``random.Random``: hands out pre-set values of ``random()``."""

    def __init__(self, values):
        self.values = list(values)

    def random(self):
        if not self.values:
            raise AssertionError("ran out of fixed draws")
        return self.values.pop(0)


@pytest.fixture
def draws():
    return FixedDraws


@pytest.fixture
def example_dir() -> Path:
    return ROOT / "data" / "example"
