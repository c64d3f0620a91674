# src/zapforge/app/modes.py
"""Command classification from positional CLI tokens."""

from collections.abc import Iterable

from zapforge.contracts.enums import Command

# First match wins, regardless of token order on the command line.
COMMAND_PRIORITY: tuple[Command, ...] = (
    Command.SELF_CHECK,
    Command.GENERATE,
    Command.SDK_GEN,
    Command.NORMAL,
)

KNOWN_TOKENS = frozenset(command.value for command in COMMAND_PRIORITY)


def classify_command(tokens: Iterable[str]) -> Command:
    """Select exactly one command.

    Examples:
        >>> classify_command([])
        <Command.NORMAL: 'normal'>

        >>> classify_command(["sdkGen", "selfCheck"])
        <Command.SELF_CHECK: 'selfCheck'>
    """
    present = set(tokens)
    for command in COMMAND_PRIORITY:
        if command.value in present:
            return command
    return Command.NORMAL


def unknown_tokens(tokens: Iterable[str]) -> list[str]:
    """Tokens that name no command, in input order."""
    return [token for token in tokens if token not in KNOWN_TOKENS]
