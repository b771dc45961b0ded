"""Point the application at the test settings before anything imports it."""

import os
from pathlib import Path

os.environ.setdefault("TASKAPI_CONFIG", str(Path(__file__).resolve().parent / "settings.test.toml"))
