import shutil
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

TESTDATA = Path(__file__).resolve().parent / "testdata"

# `openssl enc -aes-128-cbc -md sha256 -pass pass:x` was used to create
# testdata/encrypted.csv from testdata/plaintext.csv.
FIXTURE_PASSWORD = b"x"


@pytest.fixture()
def testdata():
    return TESTDATA


@pytest.fixture()
def plain_config(tmp_path):
    path = tmp_path / "gauth.csv"
    shutil.copy(TESTDATA / "plaintext.csv", path)
    return path


@pytest.fixture()
def encrypted_config(tmp_path):
    path = tmp_path / "gauth.enc.csv"
    shutil.copy(TESTDATA / "encrypted.csv", path)
    return path


@pytest.fixture()
def password_provider():
    """Fixed in-memory password; records how many times it was asked."""

    class Provider:
        def __init__(self):
            self.calls = 0

        def __call__(self):
            self.calls += 1
            return FIXTURE_PASSWORD

    return Provider()
