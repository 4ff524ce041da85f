"""Test configuration — ensure fitmetrics modules are importable."""
import sys
from pathlib import Path

# Add project root to path so `from fitmetrics.xxx import` works
sys.path.insert(0, str(Path(__file__).parent.parent))
