from pathlib import Path

import pytest

SAMPLE_LOG = """\
1500000000:  Started emerge on: Jul 14, 2017 02:40:00
1500000000:  *** emerge --update --deep @world
1500000010:  >>> emerge (1 of 2) app-shells/bash-4.4_p12 to /
1500000060:  ::: completed emerge (1 of 2) app-shells/bash-4.4_p12 to /
1500000070:  >>> emerge (2 of 2) dev-lang/python-3.11.4-r1 to /
1500000370:  ::: completed emerge (2 of 2) dev-lang/python-3.11.4-r1 to /
1500000400:  *** exiting successfully.
1500001000:  >>> emerge (1 of 1) app-shells/bash-4.4_p12 to /
1500001100:  ::: completed emerge (1 of 1) app-shells/bash-4.4_p12 to /
1500002000:  >>> emerge (1 of 2) app-shells/bash-5.2_p15 to /
1500002005:  >>> emerge (2 of 2) sys-devel/gcc-13.2.0 to /
"""


@pytest.fixture(autouse=True)
def _isolate_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Keep user config files and EMERGETIME_* env vars out of tests."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    for key in (
        "EMERGETIME_LOG",
        "EMERGETIME_PROC_DIR",
        "EMERGETIME_SANDBOX_MARKER",
        "EMERGETIME_STATISTIC",
        "EMERGETIME_RESTART_HEURISTIC",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def sample_log(tmp_path: Path) -> Path:
    """A small emerge.log with two finished runs and two open builds."""
    path = tmp_path / "emerge.log"
    path.write_text(SAMPLE_LOG, encoding="utf-8")
    return path


def write_process(proc_dir: Path, pid: int, *argv: str) -> None:
    """Create ``proc_dir/<pid>/cmdline`` with NUL-separated arguments."""
    entry = proc_dir / str(pid)
    entry.mkdir(parents=True)
    (entry / "cmdline").write_bytes("".join(f"{arg}\0" for arg in argv).encode())


@pytest.fixture
def proc_dir(tmp_path: Path) -> Path:
    """A fake /proc with sandboxes for bash-5.2 and gcc plus unrelated processes."""
    root = tmp_path / "proc"
    root.mkdir()
    write_process(root, 1, "/sbin/init")
    write_process(
        root,
        4242,
        "[sys-devel/gcc-13.2.0] sandbox",
        "/usr/lib/portage/python3.11/ebuild.sh compile",
    )
    write_process(
        root,
        4300,
        "[app-shells/bash-5.2_p15] sandbox",
        "/usr/lib/portage/python3.11/ebuild.sh install",
    )
    (root / "self").mkdir()
    return root


@pytest.fixture
def make_process():
    """Factory fixture wrapping :func:`write_process`."""
    return write_process
