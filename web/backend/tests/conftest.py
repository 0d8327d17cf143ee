"""Pytest configuration for backend tests.

Points config and data directories at a throwaway location before the app
module loads its configuration.
"""

import os
import sys
import tempfile
from pathlib import Path

# Add project root to path
project_dir = Path(__file__).parent.parent.parent.parent
if str(project_dir) not in sys.path:
    sys.path.insert(0, str(project_dir))

_scratch = tempfile.mkdtemp(prefix="storefront-backend-tests-")
os.environ["XDG_CONFIG_HOME"] = os.path.join(_scratch, "config")
os.environ["XDG_DATA_HOME"] = os.path.join(_scratch, "data")
os.environ["STOREFRONT_CONFIG"] = os.path.join(_scratch, "config", "config.toml")
