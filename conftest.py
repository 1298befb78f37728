"""
Pytest configuration file.

Puts the project root on the Python path so tests import ``src.*``.
"""

import sys
import os

_project_root = os.path.dirname(os.path.abspath(__file__))

if _project_root not in sys.path:
    sys.path.insert(0, _project_root)
