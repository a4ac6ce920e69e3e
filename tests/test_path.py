"""
Tests for derivation path parsing
"""
import pytest

from keyderive import DerivationPath, InvalidFormat, PathError, parse_path


def test_solana_path_parses_in_order():
    path = parse_path("m/44'/501'/0'/0'")
    assert path.indices == (44, 501, 0, 0)
    assert list(path) == [44, 501, 0, 0]
    assert len(path) == 4
    assert str(path) == "m/44'/501'/0'/0'"


def test_classmethod_alias():
    assert DerivationPath.parse("m/0'") == parse_path("m/0'")


def test_largest_index_accepted():
    assert parse_path("m/2147483647'").indices == (2147483647,)


@pytest.mark.parametrize("bad", [
    "m/0",              # non-hardened
    "m/0'/abc'",        # non-numeric
    "",
    "m",                # no segments
    "m/",
    "m//0'",
    "m/0'/",
    " m/0'",
    "m/0' ",
    "m/0'\n",
    "M/0'",
    "m/0H",
    "m/0h",
    "m/-1'",
    "m/+1'",
    "m/0''",
    "m/0'/1",
    "44'/501'",
    "m/4294967295'",    # would overflow once hardened
    "m/2147483648'",
    "m/1'/99999999999999999999'",
])
def test_invalid_paths_rejected(bad):
    with pytest.raises(InvalidFormat):
        parse_path(bad)


def test_error_hierarchy():
    with pytest.raises(PathError):
        parse_path("m/0")
    with pytest.raises(ValueError):
        parse_path("m/0")


def test_non_string_rejected():
    with pytest.raises(InvalidFormat):
        parse_path(b"m/0'")
    with pytest.raises(InvalidFormat):
        parse_path(None)


def test_leading_zeros_are_plain_integers():
    assert parse_path("m/007'").indices == (7,)


def test_direct_construction_validates_indices():
    with pytest.raises(InvalidFormat):
        DerivationPath((0x80000000,))
    with pytest.raises(InvalidFormat):
        DerivationPath((-1,))
    with pytest.raises(InvalidFormat):
        DerivationPath(("1",))
    with pytest.raises(InvalidFormat):
        DerivationPath((True,))


def test_empty_direct_path_is_master():
    path = DerivationPath(())
    assert len(path) == 0
    assert str(path) == "m"


def test_list_indices_become_tuple():
    path = DerivationPath([1, 2])
    assert path.indices == (1, 2)
    assert hash(path) == hash(DerivationPath((1, 2)))
