import logging
from collections.abc import Iterator

from cellpipe.commands.base import Command
from cellpipe.errors import CellpipeError

logger = logging.getLogger(__name__)


class CommandCollisionError(CellpipeError):
    """Raised when attempting to register a command name that already exists."""


class CommandNotFoundError(CellpipeError):
    """Raised when looking up a command that was never registered."""


class CommandRegistry:
    """
    Registry mapping command names to commands.

    Re-registering the same command under its name is a no-op, registering a
    different command under a taken name is an error.
    """

    def __init__(self):
        self._commands: dict[str, Command] = {}

    def register(self, command: Command, name: str | None = None) -> None:
        """
        Register a command, under its own name unless ``name`` is given.

        Raises:
            CommandCollisionError: if the name is taken by another command
            ValueError: if the name is empty
        """
        name = name if name is not None else command.name
        if not name:
            raise ValueError("Command name cannot be empty")

        existing = self._commands.get(name)
        if existing is not None:
            if existing is command:
                logger.debug(f"Command '{name}' already registered with the same instance.")
                return
            raise CommandCollisionError(
                f"Command '{name}' already registered with {type(existing).__name__}. "
                f"Cannot register {type(command).__name__}."
            )

        self._commands[name] = command
        logger.info(f"Registered command: '{name}' -> {type(command).__name__}")

    def unregister(self, name: str) -> Command:
        if name not in self._commands:
            raise CommandNotFoundError(f"Unknown command {name}")
        return self._commands.pop(name)

    def get(self, name: str) -> Command:
        """
        Raises:
            CommandNotFoundError: if no command is registered under ``name``
        """
        try:
            return self._commands[name]
        except KeyError:
            raise CommandNotFoundError(f"Unknown command {name}") from None

    def __contains__(self, name: str) -> bool:
        return name in self._commands

    def __iter__(self) -> Iterator[str]:
        return iter(self._commands)

    def __len__(self) -> int:
        return len(self._commands)


def _default_registry() -> CommandRegistry:
    from cellpipe.commands.csv_reader import CsvReader
    from cellpipe.commands.head import Head

    registry = CommandRegistry()
    registry.register(CsvReader())
    registry.register(Head())
    return registry


DEFAULT_REGISTRY = _default_registry()
