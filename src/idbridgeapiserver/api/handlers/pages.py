#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

from functools import lru_cache
from pathlib import Path

TEMPLATES_DIR = Path(__file__).parent.parent.parent / "templates"


@lru_cache()
def load_page(name: str) -> str:
    """Return the static HTML page `name`."""
    return (TEMPLATES_DIR / name).read_text()
