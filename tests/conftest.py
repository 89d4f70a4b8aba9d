"""
Pytest configuration for the Listening Lab test suite.

Puts the project root on the Python path so tests can import the
``src.roon`` and ``src.listening_lab`` packages without installing them.
"""
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))
