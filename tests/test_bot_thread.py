import unittest

from botcore.services.bot_thread import STAT_FINISHED, STAT_NEW, STAT_STOPPED, BotThread
from tests.board_util import FakeFeed, row_board


def _board(turn=75):
    return row_board(["g0:30"] + ["0:1"] * 10 + ["1:1"], turn=turn)


class EndingFeed(FakeFeed):
    """Reports a win from its own worker on the n-th poll."""

    def __init__(self, snapshot, win_on: int):
        super().__init__(snapshot)
        self.bot: BotThread | None = None
        self.polls = 0
        self.win_on = win_on

    def queue_length(self) -> int:
        self.polls += 1
        if self.polls == self.win_on and self.bot is not None:
            self.bot.on_won()
        return super().queue_length()


class TestBotThread(unittest.TestCase):
    def _bot(self, feed, **kw):
        bot = BotThread(feed, sleep=lambda s: None, poll_interval=0.01, start_delay=0, **kw)
        feed.bot = bot
        return bot

    def test_plays_until_won(self):
        feed = EndingFeed(_board(), win_on=3)
        bot = self._bot(feed)
        self.assertEqual(bot.stat, STAT_NEW)
        bot.on_started(0, ["me", "them"])
        bot.run()
        self.assertEqual(bot.result, "won")
        self.assertEqual(bot.stat, STAT_FINISHED)
        # two full cycles before the win, nothing after it
        self.assertEqual(bot.moves_submitted, 12)
        self.assertEqual(len(feed.attacks), 12)
        self.assertFalse(bot.is_alive())

    def test_loss_ends_the_loop(self):
        feed = EndingFeed(_board(), win_on=1)
        bot = self._bot(feed)
        feed.bot = None
        bot.on_started(0)
        bot.on_lost()
        bot.run()
        self.assertEqual(bot.result, "lost")
        self.assertEqual(feed.attacks, [])

    def test_stop_before_start(self):
        feed = EndingFeed(_board(), win_on=99)
        bot = self._bot(feed)
        bot.stop()
        bot.run()
        self.assertEqual(bot.stat, STAT_STOPPED)
        self.assertEqual(feed.attacks, [])

    def test_start_resets_previous_game(self):
        feed = EndingFeed(_board(), win_on=99)
        bot = self._bot(feed)
        bot.orchestrator.impossible.add(3)
        bot.on_started(1)
        self.assertEqual(bot.player_index, 1)
        self.assertEqual(len(bot.orchestrator.impossible), 0)
        self.assertTrue(bot.started.is_set())

    def test_threaded_run(self):
        feed = EndingFeed(_board(), win_on=4)
        bot = self._bot(feed, name="bot-test")
        thread = bot.start()
        bot.on_started(0)
        bot.join(timeout=5)
        self.assertFalse(thread.is_alive())
        self.assertEqual(bot.result, "won")
        self.assertEqual(bot.moves_submitted, 18)


if __name__ == "__main__":
    unittest.main()
