import sys
import os
import threading
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from core.dispatcher import SerialDispatcher
from core.editor import TimelineEditor


class TestSerialDispatcher(unittest.TestCase):
    def test_fifo_order(self):
        dispatcher = SerialDispatcher()
        seen = []
        for i in range(5):
            dispatcher.post(seen.append, i)
        self.assertEqual(dispatcher.pending, 5)
        self.assertEqual(dispatcher.drain(), 5)
        self.assertEqual(seen, [0, 1, 2, 3, 4])

    def test_posts_from_worker_threads_run_on_owner(self):
        dispatcher = SerialDispatcher()
        editor = TimelineEditor()
        owner = threading.get_ident()
        ran_on = []

        def add(duration):
            ran_on.append(threading.get_ident())
            editor.add_clip("video-track", {"duration": duration})

        workers = [threading.Thread(target=dispatcher.post, args=(add, 1.0)) for _ in range(8)]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()

        dispatcher.drain()
        self.assertEqual(set(ran_on), {owner})
        self.assertEqual(len(editor.timeline.all_clips()), 8)
        self.assertEqual(len(editor.history.undo_stack), 8)

    def test_drain_off_owner_thread_raises(self):
        dispatcher = SerialDispatcher()
        errors = []

        def worker():
            try:
                dispatcher.drain()
            except RuntimeError as e:
                errors.append(e)

        thread = threading.Thread(target=worker)
        thread.start()
        thread.join()
        self.assertEqual(len(errors), 1)

    def test_call_runs_immediately_on_owner(self):
        dispatcher = SerialDispatcher()
        self.assertEqual(dispatcher.call(lambda: 42), 42)
        self.assertEqual(dispatcher.pending, 0)

    def test_call_while_draining_is_queued(self):
        dispatcher = SerialDispatcher()
        order = []

        def outer():
            order.append("outer")
            dispatcher.call(order.append, "inner")
            order.append("outer done")

        dispatcher.post(outer)
        dispatcher.drain()
        self.assertEqual(order, ["outer", "outer done", "inner"])

    def test_error_leaves_rest_queued(self):
        dispatcher = SerialDispatcher()
        seen = []

        def boom():
            raise ValueError("bad")

        dispatcher.post(boom)
        dispatcher.post(seen.append, "later")
        with self.assertRaises(ValueError):
            dispatcher.drain()
        self.assertEqual(dispatcher.pending, 1)
        dispatcher.drain()
        self.assertEqual(seen, ["later"])

    def test_on_post_hook(self):
        woken = []
        dispatcher = SerialDispatcher(on_post=lambda: woken.append(True))
        dispatcher.post(lambda: None)
        self.assertEqual(woken, [True])
