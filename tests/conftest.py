"""Test path setup for the slice_annotator package."""
import os
import sys
from pathlib import Path

# Qt is never shown during tests
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

project_root = Path(__file__).resolve().parent.parent
src_path = project_root / "src"
if src_path.exists():
    sys.path.insert(0, str(src_path))
