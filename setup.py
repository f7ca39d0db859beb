"""setup.py hook that writes e2ekit/_build_info.py into the build tree.

pyproject.toml carries the project metadata; this script only adds the
build-time step. ``e2ekit --version`` shows the recorded commit when the
file is present.
"""

import subprocess
import sys
from datetime import UTC, datetime
from pathlib import Path

from setuptools import setup
from setuptools.command.build_py import build_py

_TEMPLATE = '''\
"""Build information - auto-generated during install, do not edit."""

COMMIT_HASH = "{commit_full}"
COMMIT_SHORT = "{commit_short}"
BUILD_TIME = "{build_time}"
MODIFIED = {modified}
'''


def _git(*args: str) -> str | None:
    try:
        result = subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            timeout=5,
            cwd=Path(__file__).parent,
        )
    except (subprocess.SubprocessError, OSError):
        return None
    return result.stdout.strip() if result.returncode == 0 else None


def write_build_info(package_dir: Path) -> bool:
    commit = _git("rev-parse", "HEAD")
    if not commit:
        print("e2ekit: no git commit, skipping _build_info.py", file=sys.stderr)
        return False

    status = _git("status", "--porcelain")
    (package_dir / "_build_info.py").write_text(
        _TEMPLATE.format(
            commit_full=commit,
            commit_short=commit[:7],
            build_time=datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
            modified=bool(status),
        )
    )
    return True


class BuildPyWithBuildInfo(build_py):
    """build_py that also writes _build_info.py into build_lib."""

    def run(self):
        super().run()
        if self.build_lib:
            package_dir = Path(self.build_lib) / "e2ekit"
            if package_dir.is_dir():
                write_build_info(package_dir)


setup(cmdclass={"build_py": BuildPyWithBuildInfo})
