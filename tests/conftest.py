import json
import stat
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

import pytest

FAKE_TOOL_TEMPLATE = """#!{python}
import json
import os
import sys
import time

with open({invocation_file!r}, "w") as f:
    json.dump({{"argv": sys.argv[1:], "rust_backtrace": os.environ.get("RUST_BACKTRACE")}}, f)

time.sleep({sleep!r})
sys.stdout.buffer.write({stdout!r})
sys.stderr.buffer.write({stderr!r})
sys.exit({returncode!r})
"""


@dataclass
class FakeTool:
    path: Path
    invocation_file: Path

    def invocation(self) -> dict[str, Any]:
        return json.loads(self.invocation_file.read_text())

    def was_invoked(self) -> bool:
        return self.invocation_file.exists()


FakeToolFactory = Callable[..., FakeTool]


@pytest.fixture
def fake_tool(tmp_path: Path) -> FakeToolFactory:
    """
    Writes an executable standing in for the view-function tool. It records its argv and environment, then prints
    the configured stdout/stderr and exits with the configured code.
    """

    def make(
        stdout: str | bytes = "",
        stderr: str | bytes = "",
        returncode: int = 0,
        sleep: float = 0.0,
        name: str = "view-function",
    ) -> FakeTool:
        tool_path = tmp_path / name
        invocation_file = tmp_path / f"{name}.invocation.json"
        tool_path.write_text(
            FAKE_TOOL_TEMPLATE.format(
                python=sys.executable,
                invocation_file=str(invocation_file),
                sleep=sleep,
                stdout=stdout.encode() if isinstance(stdout, str) else stdout,
                stderr=stderr.encode() if isinstance(stderr, str) else stderr,
                returncode=returncode,
            )
        )
        tool_path.chmod(tool_path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return FakeTool(path=tool_path, invocation_file=invocation_file)

    return make
