"""
Type-safe wrappers for Discord identifiers.

The backend and the REST API exchange snowflakes as strings for JSON parity,
while py-cord wants integers. These wrappers validate the value once and
convert in both directions.
"""

from __future__ import annotations

from typing import Union


class Snowflake:
    """
    Base wrapper for a Discord snowflake ID.

    The value is stored as a normalized decimal string.

    Example:
        >>> GuildID("  123 ").to_int()
        123
        >>> str(UserID(42))
        '42'

    Raises:
        ValueError: If the value is not a non-negative integer or numeric string.
    """

    __slots__ = ("_value",)

    def __init__(self, value: Union[str, int, "Snowflake"]) -> None:
        if isinstance(value, Snowflake):
            self._value = value._value
            return
        if isinstance(value, bool):
            raise ValueError(f"Cannot create {type(self).__name__} from bool")
        if isinstance(value, int):
            number = value
        elif isinstance(value, str):
            try:
                number = int(value.strip())
            except ValueError:
                raise ValueError(f"Invalid {type(self).__name__}: {value!r}") from None
        else:
            raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}: {value}")
        if number < 0:
            raise ValueError(f"Invalid {type(self).__name__}: {value!r}")
        self._value = str(number)

    def to_int(self) -> int:
        """Return the snowflake as an integer for Discord API calls."""
        return int(self._value)

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Snowflake):
            return type(self) is type(other) and self._value == other._value
        if isinstance(other, str):
            return self._value == other
        if isinstance(other, int):
            return self._value == str(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._value))


class UserID(Snowflake):
    """Snowflake of a Discord user."""

    __slots__ = ()


class GuildID(Snowflake):
    """Snowflake of a Discord guild."""

    __slots__ = ()


class ChannelID(Snowflake):
    """Snowflake of a Discord channel or thread."""

    __slots__ = ()


class RoleID(Snowflake):
    """Snowflake of a guild role."""

    __slots__ = ()
