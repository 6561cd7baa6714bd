import os
import tempfile

import pytest

# Keep test runs out of the user's log file; must be set before config is imported
os.environ.setdefault(
    "LINKCONF_LOG_PATH", os.path.join(tempfile.gettempdir(), "linkconf_tests", "linkconf.log")
)

@pytest.fixture
def config_file(tmp_path):
    from shared_config import init_config

    return init_config(tmp_path / "shared_config.json")
