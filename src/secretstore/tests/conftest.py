import os
import shutil
import subprocess
import tempfile

import pytest

from secretstore._output import NullBackend, output

from .helpers import FakeBackend, generate_key


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def secrets_path(tmp_path):
    return tmp_path / "secrets"


@pytest.fixture(autouse=True)
def reset_output():
    yield
    output.backend = NullBackend()
    output.enable_debug = False


@pytest.fixture
def gnupghome(monkeypatch):
    # gpg-agent's socket path must stay short, so avoid pytest's tmp_path.
    home = tempfile.mkdtemp(prefix="gpg")
    os.chmod(home, 0o700)
    monkeypatch.setitem(os.environ, "GNUPGHOME", home)
    yield home
    try:
        subprocess.call(
            ["gpgconf", "--kill", "gpg-agent"],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except OSError:
        pass
    shutil.rmtree(home, ignore_errors=True)


@pytest.fixture
def gpg_keys(gnupghome):
    """Two independent identities, alice and mallory."""
    return {
        "alice": generate_key("Alice <alice@example.com>"),
        "mallory": generate_key("Mallory <mallory@example.com>"),
    }
