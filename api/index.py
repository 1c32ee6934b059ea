"""
Serverless function entry point.
Exposes the DietConnect FastAPI app to the platform's Python runtime.
"""

import sys
from pathlib import Path

root_path = Path(__file__).parent.parent
sys.path.insert(0, str(root_path))

from dietconnect.main import app  # noqa: E402,F401
