import os
import shutil
import sys
import tempfile

import pytest

# Point the service at a throwaway data directory before the package is imported
os.environ.setdefault("JUDGE_DATA_DIR", tempfile.mkdtemp(prefix="contest_judge_test_"))
os.environ["JUDGE0_API_KEY"] = ""

from contest_judge import config  # noqa: E402


def requires(*tools):
    missing = [t for t in tools if shutil.which(t) is None]
    return pytest.mark.skipif(bool(missing), reason=f"not on PATH: {', '.join(missing)}")


@pytest.fixture(autouse=True)
def temp_dir(tmp_path, monkeypatch):
    work = tmp_path / "work"
    monkeypatch.setattr(config, "TEMP_DIR", work)
    monkeypatch.setattr(config, "JUDGE0_API_KEY", "")
    config.init_temp_dir()
    return work


@pytest.fixture
def python_bin(monkeypatch):
    """Run python submissions with the interpreter running the tests."""
    language = dict(config.LANGUAGES["python"], interpreter=sys.executable)
    monkeypatch.setitem(config.LANGUAGES, "python", language)
    return sys.executable
