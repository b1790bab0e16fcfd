"""Console reporter for displaying Tempo Disk readings."""

from __future__ import annotations

import asyncio
import logging
import sys
from datetime import datetime
from typing import Optional

from .formatting import format_age, format_percent, format_temperature
from .registry import DeviceRegistry

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 30

COLUMNS = ("Sensor", "Id", "Temp", "Hum", "Dew", "Batt", "Age")


class ConsoleReporter:
    """Prints the cached values of every known device.

    Supports two modes:
    - Timed mode (interval > 0): prints automatically every N seconds
    - Keypress mode (interval == 0): prints when Enter is pressed
    """

    def __init__(
        self,
        registry: DeviceRegistry,
        interval: int = DEFAULT_INTERVAL_SECONDS,
    ) -> None:
        self._registry = registry
        self._interval = interval
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._reading_stdin = False

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    async def start(self) -> None:
        """Start the console reporter."""
        self._running = True

        if self._interval == 0:
            self._task = asyncio.create_task(self._run_keypress(), name="console_reporter")
            logger.info("Console reporter started (keypress mode)")
        else:
            self._task = asyncio.create_task(self._run_timed(), name="console_reporter")
            logger.info("Console reporter started (every %ds)", self._interval)

    async def stop(self) -> None:
        """Stop the console reporter."""
        self._running = False

        if self._reading_stdin:
            self._reading_stdin = False
            try:
                asyncio.get_running_loop().remove_reader(sys.stdin)
            except (ValueError, OSError, NotImplementedError):
                pass

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _run_timed(self) -> None:
        """Print readings at a fixed interval."""
        while self._running:
            await asyncio.sleep(self._interval or DEFAULT_INTERVAL_SECONDS)
            try:
                print(self.render())
            except Exception as e:
                logger.warning("Console reporter error: %s", e)

    async def _fall_back_to_timed(self, reason: str) -> None:
        logger.warning(
            "Keypress mode unavailable (%s), using %ds interval",
            reason,
            DEFAULT_INTERVAL_SECONDS,
        )
        self._interval = DEFAULT_INTERVAL_SECONDS
        await self._run_timed()

    async def _run_keypress(self) -> None:
        """Print readings when Enter is pressed."""
        # A closed or redirected stdin is always readable and never blocks
        if sys.stdin is None or not sys.stdin.isatty():
            await self._fall_back_to_timed("stdin is not a terminal")
            return

        loop = asyncio.get_running_loop()
        event = asyncio.Event()

        def _on_stdin() -> None:
            if sys.stdin.readline():
                event.set()
                return
            # EOF keeps the descriptor readable forever
            loop.remove_reader(sys.stdin)
            self._reading_stdin = False
            logger.info("stdin closed, keypress printing stopped")

        try:
            loop.add_reader(sys.stdin, _on_stdin)
        except (NotImplementedError, OSError, ValueError) as e:
            # No add_reader on Windows, no fileno on wrapped streams
            await self._fall_back_to_timed(str(e) or type(e).__name__)
            return

        self._reading_stdin = True
        print("Press Enter to print readings")

        while self._running:
            event.clear()
            await event.wait()
            if self._running:
                try:
                    print(self.render())
                except Exception as e:
                    logger.warning("Console reporter error: %s", e)

    def render(self, now: Optional[datetime] = None) -> str:
        """Render current readings as a formatted table."""
        now = now or datetime.now()
        entities = self._registry.get_all()
        if not entities:
            return f"\n[{now.strftime('%H:%M:%S')}] No Tempo Disks seen yet"

        rows: list[tuple[str, ...]] = []
        for entity in entities:
            values = entity.values()
            if entity.last_seen:
                age = format_age((now - entity.last_seen).total_seconds())
            else:
                age = "-"
            rows.append((
                entity.name,
                entity.identifier,
                format_temperature(values["temperature"]),
                format_percent(values["humidity"]),
                format_temperature(values["dewPoint"]),
                format_percent(values["battery"]),
                age,
            ))

        name_w = max(len(COLUMNS[0]), *(len(r[0]) for r in rows))
        id_w = max(len(COLUMNS[1]), *(len(r[1]) for r in rows))

        def _line(cols: tuple[str, ...]) -> str:
            name, ident, temp, hum, dew, batt, age = cols
            return (
                f"{name:<{name_w}}  {ident:<{id_w}}  {temp:>7}  {hum:>5}"
                f"  {dew:>7}  {batt:>5}  {age:>6}"
            )

        header = _line(COLUMNS)
        separator = "-" * len(header)

        lines = [
            "",
            f"[{now.strftime('%H:%M:%S')}] {len(rows)} Tempo Disk(s)",
            separator,
            header,
            separator,
        ]
        lines.extend(_line(row) for row in rows)
        lines.append(separator)
        return "\n".join(lines)
