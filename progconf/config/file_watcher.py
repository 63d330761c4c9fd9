"""
File watcher for a single configuration file.

Subscribes to file system notifications for one handle's file, waits for
writes to settle, re-reads the file and hands the content (or the error) to
the consumer through unbuffered async streams.
"""

import asyncio
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Tuple

from watchdog.events import (
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from ..errors import ConfigError, ErrorCode, SubscriptionError
from ..models import WatcherSettings

if TYPE_CHECKING:
    from .handle import ConfigHandle

logger = logging.getLogger(__name__)


class WatcherState(str, Enum):
    """Lifecycle of a ChangeWatcher."""
    IDLE = "idle"
    WATCHING = "watching"
    DELIVERING = "delivering"
    FAILED = "failed"
    STOPPED = "stopped"


class RendezvousChannel:
    """
    One-directional async channel without buffering.

    send() returns only once a receiver has taken the value, so a slow
    consumer throttles the producer instead of letting stale values pile up.
    """

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=1)

    async def send(self, item: Any) -> None:
        await self._queue.put(item)
        await self._queue.join()

    async def receive(self) -> Any:
        item = await self._queue.get()
        self._queue.task_done()
        return item

    def __aiter__(self):
        return self

    async def __anext__(self) -> Any:
        return await self.receive()


@dataclass
class ConfigData:
    """Content and error streams produced by a ChangeWatcher."""
    data: RendezvousChannel = field(default_factory=RendezvousChannel)
    errors: RendezvousChannel = field(default_factory=RendezvousChannel)


def is_change_event(event: FileSystemEvent, target_name: str) -> bool:
    """
    Check whether an event signals a content change of the watched file.

    Modified, moved (away from or onto the file) and deleted events count.
    Everything else, including created/opened/closed and directory events,
    does not.
    """
    if event.is_directory:
        return False

    if event.event_type in (EVENT_TYPE_MODIFIED, EVENT_TYPE_DELETED):
        return Path(os.fsdecode(event.src_path)).name == target_name

    if event.event_type == EVENT_TYPE_MOVED:
        names = {Path(os.fsdecode(event.src_path)).name}
        dest_path = getattr(event, "dest_path", None)
        if dest_path:
            names.add(Path(os.fsdecode(dest_path)).name)
        return target_name in names

    return False


class SingleFileHandler(FileSystemEventHandler):
    """Forwards change events for one file from the observer thread to asyncio."""

    def __init__(
        self,
        target_name: str,
        loop: asyncio.AbstractEventLoop,
        notify: Callable[[Any], None]
    ):
        """
        Initialize handler.

        Args:
            target_name: File name to report; other files in the directory are ignored
            loop: Event loop the notify callback runs on
            notify: Called (on the loop) with each change event or observer-side exception
        """
        super().__init__()
        self.target_name = target_name
        self._loop = loop
        self._notify = notify

    def on_modified(self, event: FileSystemEvent) -> None:
        self._forward_if_target(event)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._forward_if_target(event)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._forward_if_target(event)

    def _forward_if_target(self, event: FileSystemEvent) -> None:
        try:
            if is_change_event(event, self.target_name):
                self._forward(event)
        except Exception as e:
            logger.error(f"Error handling notification {event!r}: {e}")
            self._forward(e)

    def _forward(self, item: Any) -> None:
        try:
            self._loop.call_soon_threadsafe(self._notify, item)
        except RuntimeError:
            # Event loop already closed; the watcher is gone
            logger.debug(f"Dropping notification after loop shutdown: {item!r}")


class ChangeWatcher:
    """Watches one configuration handle and streams its content on change."""

    def __init__(
        self,
        handle: "ConfigHandle",
        settings: Optional[WatcherSettings] = None,
        observer_factory: Callable[[], Any] = Observer
    ):
        """
        Initialize change watcher.

        Args:
            handle: Configuration handle to watch
            settings: Settle and health check timing
            observer_factory: Creates the watchdog observer (injectable for tests)
        """
        self.handle = handle
        self.settings = settings or WatcherSettings()
        self.observer_factory = observer_factory

        self.state = WatcherState.IDLE
        self._observer = None
        self._events: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._streams: Optional[ConfigData] = None

    @property
    def target(self) -> Path:
        return Path(os.path.abspath(self.handle.path))

    async def listen(self) -> ConfigData:
        """
        Start watching the handle's file.

        Returns:
            ConfigData whose streams receive new contents and errors

        Raises:
            SubscriptionError: If already listening, the file is missing,
                or the notification observer cannot be started
        """
        if self.is_running():
            raise SubscriptionError(
                self.target,
                "watcher already running",
                code=ErrorCode.WATCHER_ALREADY_RUNNING
            )

        if not self.handle.exists():
            raise SubscriptionError(self.target, "file does not exist")

        self._loop = asyncio.get_running_loop()
        self._events = asyncio.Queue()
        self._start_observer()

        self._streams = ConfigData()
        self.state = WatcherState.WATCHING
        self._task = self._loop.create_task(
            self._run(),
            name=f"progconf-watch:{self.handle.program_name}/{self.handle.file_name}"
        )

        logger.info(f"Watching {self.target} for changes")
        return self._streams

    async def stop(self) -> None:
        """Stop the background task and release the file system subscription."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        self._stop_observer()

        if self.state != WatcherState.IDLE:
            logger.info(f"Stopped watching {self.target}")
            self.state = WatcherState.STOPPED

    def is_running(self) -> bool:
        """
        Check if the watcher task is running.

        Returns:
            True if running, False otherwise
        """
        return self._task is not None and not self._task.done()

    async def __aenter__(self) -> ConfigData:
        return await self.listen()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    def _start_observer(self) -> None:
        target = self.target
        handler = SingleFileHandler(target.name, self._loop, self._events.put_nowait)

        observer = self.observer_factory()
        try:
            observer.schedule(handler, str(target.parent), recursive=False)
            observer.start()
        except Exception as e:
            raise SubscriptionError(target, f"cannot start notification observer: {e}") from e

        self._observer = observer

    def _stop_observer(self) -> None:
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        if observer.is_alive():
            observer.join(timeout=5.0)

    async def _run(self) -> None:
        """Watch loop: one publication per (settled) change notification."""
        try:
            while True:
                try:
                    item = await asyncio.wait_for(
                        self._events.get(),
                        timeout=self.settings.health_check_interval
                    )
                except asyncio.TimeoutError:
                    if not await self._check_observer():
                        return
                    continue

                if isinstance(item, BaseException):
                    await self._publish_notification_error(item)
                    continue

                await self._deliver(item)
        finally:
            self._stop_observer()

    async def _deliver(self, event: FileSystemEvent) -> None:
        self.state = WatcherState.DELIVERING
        logger.debug(f"Change notification for {self.target}: {event.event_type}")

        await self._settle()
        collapsed, failures = self._drain_pending()
        if collapsed:
            logger.debug(f"Collapsed {collapsed} notification(s) into one read")

        try:
            content = await asyncio.to_thread(self.handle.read)
        except ConfigError as e:
            self.state = WatcherState.FAILED
            logger.warning(f"Failed to re-read {self.target}: {e}")
            await self._streams.errors.send(e)
        else:
            await self._streams.data.send(content)

        self.state = WatcherState.WATCHING

        for failure in failures:
            await self._publish_notification_error(failure)

    async def _settle(self) -> None:
        """Sleep until the file's size and mtime stop changing (bounded)."""
        previous = self._signature()
        for _ in range(self.settings.max_settle_rounds):
            await asyncio.sleep(self.settings.settle_seconds)
            current = self._signature()
            if current == previous:
                return
            previous = current
        logger.debug(f"{self.target} still changing after {self.settings.max_settle_rounds} settle rounds")

    def _signature(self) -> Optional[Tuple[int, int]]:
        try:
            st = os.stat(self.handle.path)
        except OSError:
            return None
        return st.st_mtime_ns, st.st_size

    def _drain_pending(self) -> Tuple[int, List[BaseException]]:
        """Drop change events queued during the settle window; keep failures."""
        collapsed = 0
        failures: List[BaseException] = []
        while True:
            try:
                item = self._events.get_nowait()
            except asyncio.QueueEmpty:
                return collapsed, failures
            if isinstance(item, BaseException):
                failures.append(item)
            else:
                collapsed += 1

    async def _publish_notification_error(self, error: BaseException) -> None:
        self.state = WatcherState.FAILED
        await self._streams.errors.send(
            SubscriptionError(self.target, str(error), code=ErrorCode.NOTIFICATION_ERROR)
        )
        self.state = WatcherState.WATCHING

    async def _check_observer(self) -> bool:
        """
        Restart a dead observer.

        Returns:
            False if the observer could not be restarted and the loop must end
        """
        if self._observer is not None and self._observer.is_alive():
            return True

        logger.error(f"Notification observer for {self.target} stopped unexpectedly")
        await self._publish_notification_error(RuntimeError("notification observer stopped unexpectedly"))

        self._stop_observer()
        try:
            self._start_observer()
        except SubscriptionError as e:
            logger.error(f"Could not restart observer for {self.target}: {e}")
            self.state = WatcherState.FAILED
            await self._streams.errors.send(e)
            self.state = WatcherState.STOPPED
            return False

        logger.info(f"Restarted notification observer for {self.target}")
        return True
