"""Per-video lock registry tests."""

from __future__ import annotations

import threading
import time
import unittest

from vidscribe.services.locks import VideoLocks


class VideoLocksTests(unittest.TestCase):
    def test_lock_is_released_from_registry_after_use(self) -> None:
        locks = VideoLocks()

        for index in range(50):
            with locks.hold(f"video-{index}"):
                self.assertEqual(len(locks), 1)

        self.assertEqual(len(locks), 0)

    def test_reentrant_hold_keeps_lock_until_outermost_release(self) -> None:
        locks = VideoLocks()

        with locks.hold("video-1"):
            with locks.hold("video-1"):
                self.assertEqual(len(locks), 1)
            self.assertEqual(len(locks), 1)

        self.assertEqual(len(locks), 0)

    def test_lock_is_released_when_body_raises(self) -> None:
        locks = VideoLocks()

        with self.assertRaises(RuntimeError):
            with locks.hold("video-1"):
                raise RuntimeError("boom")

        self.assertEqual(len(locks), 0)

    def test_waiting_thread_shares_the_same_lock(self) -> None:
        locks = VideoLocks()
        order: list[str] = []

        def contender() -> None:
            with locks.hold("video-1"):
                order.append("contender")

        with locks.hold("video-1"):
            worker = threading.Thread(target=contender)
            worker.start()
            time.sleep(0.05)
            order.append("owner")
        worker.join(timeout=2)

        self.assertEqual(order, ["owner", "contender"])
        self.assertEqual(len(locks), 0)


if __name__ == "__main__":
    unittest.main()
