import threading
import time
from typing import Callable, Optional

from botcore.schemas import BotConfig, POLL_INTERVAL, START_DELAY
from botcore.services.orchestrator import GameFeed, TurnOrchestrator
from botcore.utils.audit import _dbg

"""Game loop that polls an externally updated feed and drives the orchestrator"""

# stat values
STAT_NEW = 0
STAT_WAITING = 1   # waiting for the started signal
STAT_PLAYING = 2
STAT_FINISHED = 3
STAT_STOPPED = 9


class BotThread:
    """
    Single decision thread for one game.

    The feed's own worker delivers lifecycle signals through on_started /
    on_won / on_lost; everything else is polled every poll_interval.
    """

    def __init__(self, feed: GameFeed, config: BotConfig | None = None, *, name: str = "bot",
                 poll_interval: float = POLL_INTERVAL, start_delay: float = START_DELAY,
                 log_id: str | None = None, sleep: Callable[[float], None] = time.sleep):
        self.name = name
        self.feed = feed
        self.orchestrator = TurnOrchestrator(config, log_id=log_id)
        self.log_id = log_id
        self.poll_interval = poll_interval
        self.start_delay = start_delay
        self.started = threading.Event()
        self.result: Optional[str] = None  # "won" / "lost"
        self.player_index: Optional[int] = None
        self.moves_submitted = 0
        self.stat: int = STAT_NEW
        self._sleep = sleep
        self._thread: Optional[threading.Thread] = None

    # --- lifecycle signals (called from the feed worker) ---
    def on_started(self, player_index: int, users: list[str] | None = None) -> None:
        _dbg(self.log_id, f"Game started with {users or []}")
        self.player_index = player_index
        self.orchestrator.reset()
        self.started.set()

    def on_won(self) -> None:
        _dbg(self.log_id, "Won game!")
        self.result = "won"
        self.orchestrator.terminate()

    def on_lost(self) -> None:
        _dbg(self.log_id, "Lost game...")
        self.result = "lost"
        self.orchestrator.terminate()

    def stop(self) -> None:
        self.stat = STAT_STOPPED
        self.orchestrator.terminate()
        # release a run() still waiting for the start signal
        self.started.set()

    def is_alive(self) -> bool:
        return self.stat == STAT_PLAYING and not self.orchestrator.is_terminated()

    def run(self) -> None:
        if self.stat == STAT_STOPPED:
            return
        self.stat = STAT_WAITING
        try:
            while not self.started.wait(self.poll_interval):
                if self.stat == STAT_STOPPED:
                    return
            if self.stat == STAT_STOPPED or self.orchestrator.is_terminated():
                return
            self.stat = STAT_PLAYING
            self._sleep(self.start_delay)
            while self.is_alive():
                self._sleep(self.poll_interval)
                moves = self.orchestrator.tick(self.feed)
                self.moves_submitted += len(moves)
        finally:
            if self.stat != STAT_STOPPED:
                self.stat = STAT_FINISHED
            _dbg(self.log_id, f"{self.name} finished: {self.result or 'no result'}, {self.moves_submitted} moves")

    def start(self) -> threading.Thread:
        self._thread = threading.Thread(target=self.run, name=self.name, daemon=True)
        self._thread.start()
        return self._thread

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)
