"""
Fixtures used in the tests
"""
import pytest

# SLIP-0010 test vector seeds (ed25519 section)
VECTOR1_SEED = bytes.fromhex("000102030405060708090a0b0c0d0e0f")
VECTOR2_SEED = bytes.fromhex(
    "fffcf9f6f3f0edeae7e4e1dedbd8d5d2cfccc9c6c3c0bdbab7b4b1aeaba8a5a2"
    "9f9c999693908d8a8784817e7b7875726f6c696663605d5a5754514e4b484542"
)

ABANDON_MNEMONIC = "abandon " * 11 + "about"
ABANDON_SEED = bytes.fromhex(
    "5eb00bbddcf069084889a8ab9155568165f5c453ccb85e70811aaed6f6da5fc1"
    "9a5ac40b389cd370d086206dec8aa6c43daea6690f20ad3d8d48b2d2ce9e38e4"
)


@pytest.fixture
def vector1_seed():
    return VECTOR1_SEED


@pytest.fixture
def abandon_seed():
    return ABANDON_SEED


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Run CLI code inside an empty directory so config/ and solkey/ land in tmp_path."""
    monkeypatch.chdir(tmp_path)
    return tmp_path
