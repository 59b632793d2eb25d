"""Shared fixtures: a scriptable stand-in for the openvpn binary."""

import asyncio
import stat
import sys
import time

import pytest

# The fake client reads its --config file and runs one directive per line:
#   stdout:<text>   stderr:<text>   sleep:<seconds>   exit:<code>
#   stdout-hex:<hex> and stderr-hex:<hex> write raw bytes without a newline
#   spawn:<seconds> starts a child that keeps both pipes open that long
FAKE_OPENVPN = '''#!{python}
import subprocess
import sys
import time

args = sys.argv[1:]
config = args[args.index("--config") + 1]
with open(config) as f:
    directives = f.read().splitlines()

for line in directives:
    action, _, value = line.partition(":")
    if action == "stdout":
        sys.stdout.write(value + "\\n")
        sys.stdout.flush()
    elif action == "stderr":
        sys.stderr.write(value + "\\n")
        sys.stderr.flush()
    elif action == "stdout-hex":
        sys.stdout.buffer.write(bytes.fromhex(value))
        sys.stdout.buffer.flush()
    elif action == "stderr-hex":
        sys.stderr.buffer.write(bytes.fromhex(value))
        sys.stderr.buffer.flush()
    elif action == "spawn":
        subprocess.Popen([sys.executable, "-c", "import time; time.sleep(" + value + ")"])
    elif action == "sleep":
        time.sleep(float(value))
    elif action == "exit":
        sys.exit(int(value))
'''


@pytest.fixture
def fake_openvpn(tmp_path):
    if sys.platform == "win32":
        pytest.skip("fake openvpn relies on a shebang script")
    script = tmp_path / "fake-openvpn"
    script.write_text(FAKE_OPENVPN.format(python=sys.executable))
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(script)


@pytest.fixture
def make_config(tmp_path):
    """Write a client config holding the given directives."""
    def _make(*directives, name="client.ovpn"):
        path = tmp_path / name
        path.write_text("\n".join(directives) + "\n")
        return path
    return _make


async def wait_until(predicate, timeout=5.0, interval=0.01):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(interval)


@pytest.fixture
def wait_for():
    return wait_until
