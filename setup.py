from __future__ import annotations

import re
from pathlib import Path

from setuptools import find_packages, setup

ROOT = Path(__file__).parent
PACKAGE_INIT = ROOT / "src" / "claude_statusline" / "__init__.py"

VERSION = "0.1.0"
if PACKAGE_INIT.exists():
    try:
        match = re.search(r'^__version__ = "([^"]+)"', PACKAGE_INIT.read_text(encoding="utf-8"), re.M)
        if match:
            VERSION = match.group(1)
    except OSError:  # pragma: no cover - best effort
        pass

setup(
    name="claude-statusline",
    version=VERSION,
    description="Status line for Claude CLI sessions backed by cached ccusage data",
    package_dir={"": "src"},
    packages=find_packages("src"),
    python_requires=">=3.9",
    install_requires=["psutil>=5.9"],
    extras_require={"test": ["pytest>=7"]},
    entry_points={
        "console_scripts": [
            "claude-statusline=claude_statusline.app:main",
            "claude-statusline-track=claude_statusline.app:track_main",
            "claude-statusline-update=claude_statusline.update_cache:main",
        ],
    },
)
