"""Edge-triggered fan mode commands."""

from __future__ import annotations

import logging
from enum import IntEnum

from .discovery import DatagramSender, DiscoveryEngine


logger = logging.getLogger("holodash.link")


class FanMode(IntEnum):
    TURBO = 0
    SILENT = 1
    CUSTOM = 2
    AUTO = 3


FAN_COMMANDS: dict[int, bytes] = {mode.value: f"FAN:{mode.name}".encode("ascii") for mode in FanMode}
DEFAULT_MODE = FanMode.AUTO


def command_for(mode: int) -> bytes | None:
    return FAN_COMMANDS.get(mode)


class CommandDispatcher:
    def __init__(
        self,
        transport: DatagramSender,
        discovery: DiscoveryEngine,
        initial_mode: int = DEFAULT_MODE,
    ) -> None:
        if initial_mode not in FAN_COMMANDS:
            raise ValueError(f"Unknown fan mode: {initial_mode}")
        self.transport = transport
        self.discovery = discovery
        self.current_mode = int(initial_mode)

    def on_mode_selected(self, new_mode: int) -> bool:
        """Returns True only when a command was actually transmitted."""
        command = command_for(new_mode)
        if command is None:
            logger.debug("ignoring unknown fan mode %r", new_mode)
            return False
        if new_mode == self.current_mode:
            return False

        self.current_mode = int(new_mode)
        if not self.discovery.connected or self.discovery.endpoint is None:
            return False

        sent = self.transport.send(command, self.discovery.endpoint)
        logger.info(
            "fan mode %s sent to %s",
            FanMode(new_mode).name,
            self.discovery.endpoint,
            extra={"event": "fan_command", "mode": FanMode(new_mode).name, "endpoint": str(self.discovery.endpoint)},
        )
        return sent
