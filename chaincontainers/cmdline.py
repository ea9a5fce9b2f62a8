"""
Ordered command-line token builder for container launch commands.
"""

from collections.abc import Iterator
from typing import Any


class CommandLine:
    """
    Accumulates launch arguments in order.

    Flags are never removed. ``append_flag`` and ``set_flag_value`` keep a
    single occurrence of their flag; ``append_value`` appends unconditionally.

    Usage:
        cmd = CommandLine(["--host", "0.0.0.0"])
        cmd.append_flag("--json").set_flag_value("--chain-id", 31337)
        cmd.tokens  # ("--host", "0.0.0.0", "--json", "--chain-id", "31337")
    """

    def __init__(self, tokens: list[Any] | None = None):
        self._tokens: list[str] = [str(t) for t in tokens or []]

    def append_flag(self, flag: str) -> "CommandLine":
        """Append ``flag`` unless it is already present."""
        if flag not in self._tokens:
            self._tokens.append(flag)
        return self

    def set_flag_value(self, flag: str, value: Any) -> "CommandLine":
        """
        Ensure ``flag`` appears once, immediately followed by ``value``.

        If ``flag`` is already present the token after it is replaced.
        """
        value = str(value)
        try:
            idx = self._tokens.index(flag)
        except ValueError:
            self._tokens.extend([flag, value])
            return self

        if idx + 1 < len(self._tokens):
            self._tokens[idx + 1] = value
        else:
            self._tokens.append(value)
        return self

    def append_value(self, value: Any) -> "CommandLine":
        """Append a positional token."""
        self._tokens.append(str(value))
        return self

    def value_of(self, flag: str) -> str | None:
        """Value paired with ``flag``, or None if absent or trailing."""
        try:
            idx = self._tokens.index(flag)
        except ValueError:
            return None
        if idx + 1 < len(self._tokens):
            return self._tokens[idx + 1]
        return None

    @property
    def tokens(self) -> tuple[str, ...]:
        return tuple(self._tokens)

    def __contains__(self, token: object) -> bool:
        return token in self._tokens

    def __iter__(self) -> Iterator[str]:
        return iter(tuple(self._tokens))

    def __len__(self) -> int:
        return len(self._tokens)

    def __repr__(self) -> str:
        return f"CommandLine({self._tokens!r})"
