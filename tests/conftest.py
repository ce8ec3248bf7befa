"""Make ``gitlab_app`` importable from a plain source checkout.

With ``pip install -e .`` the project root is already importable and this is a no-op.
"""

import sys
from pathlib import Path

PROJECT_ROOT = str(Path(__file__).resolve().parent.parent)

if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)
