"""
sys.modules isolation for the HTTP API tests.

The API tests import ``app.api`` from fir-portal/ after the unit tests in
tests/fir_portal/ have already imported (and patched) ``app.*`` modules in
the same process. Dropping the cached ``app`` entries before each file is
collected gives every API test file a freshly imported package.
"""

import sys


def pytest_collect_file(parent, file_path):
    """Forget cached app.* modules before every test file is collected."""
    if file_path.suffix == ".py" and file_path.name.startswith("test_"):
        for key in [k for k in sys.modules if k == "app" or k.startswith("app.")]:
            del sys.modules[key]
    return None
