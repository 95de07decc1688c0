import pytest

from houston.datatypes.discord_datatypes import ChannelID, GuildID, RoleID, UserID


def test_userid_from_int_and_str_and_equality_and_hash():
    u1 = UserID(12345)
    assert u1.to_int() == 12345
    assert str(u1) == "12345"

    u2 = UserID(" 12345 ")
    assert u1 == u2

    u3 = UserID(u1)
    assert u3 == u1

    # equality with raw types
    assert u1 == 12345
    assert u1 == "12345"

    assert len({u1, u2, u3, UserID(67890)}) == 2


def test_different_snowflake_kinds_are_not_equal():
    assert GuildID(1) != UserID(1)
    assert repr(ChannelID("7")) == "ChannelID('7')"


@pytest.mark.parametrize("value", ["abc", "", -5, True, [], None, 1.5])
def test_invalid_values(value):
    with pytest.raises(ValueError):
        RoleID(value)  # type: ignore
