import pytest

from attachguard.datatypes.discord_datatypes import ChannelID, GuildID, UserID


class DummyObj:
    def __init__(self, id_val=None):
        self.id = id_val


def test_userid_from_int_and_str_and_equality_and_hash():
    u1 = UserID(12345)
    assert int(u1) == 12345
    assert str(u1) == "12345"

    u2 = UserID(" 12345 ")
    assert u1 == u2

    u3 = UserID.from_int(67890)
    assert isinstance(u3, UserID)
    assert u3.to_int() == 67890

    u4 = UserID.from_user(DummyObj(id_val=111))  # type: ignore
    assert u4 == 111
    assert u4 == "111"

    assert len({u1, u2, u3, u4}) == 3


def test_different_wrapper_kinds_are_not_equal():
    assert GuildID(5) != ChannelID(5)
    assert repr(ChannelID(5)) == "ChannelID('5')"


@pytest.mark.parametrize("bad", [[], True, "abc", 1.5])
def test_invalid_values_raise(bad):
    with pytest.raises(ValueError):
        UserID(bad)  # type: ignore


@pytest.mark.parametrize(
    "cls, factory",
    [
        (GuildID, "from_guild"),
        (ChannelID, "from_channel"),
    ],
)
def test_from_object_helpers(cls, factory):
    inst = getattr(cls, factory)(DummyObj(id_val=222))
    assert isinstance(inst, cls)
    assert int(inst) == 222
    assert inst == cls("222")
