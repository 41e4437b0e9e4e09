import os
import tempfile
import unittest

from tamperwatch.config import MonitorConfig, TimeUnit
from tamperwatch.errors import InvalidArgumentError
from tamperwatch.monitor import FileMonitor
from tamperwatch.notifier import RecordingNotifier
from tamperwatch.scheduler import SchedulerState

from ._util import make_tree, wait_for


class TestFileMonitor(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = self._tmp.name
        make_tree(self.root, {"app.cfg": "key=value", "lib": {"core.py": "pass"}})
        self.notifier = RecordingNotifier()
        self.monitor = FileMonitor(
            period=20,
            time_unit=TimeUnit.MILLISECONDS,
            initial_delay_ms=0,
            notifier=self.notifier,
        )

    def tearDown(self):
        self.monitor.stop()
        self.monitor.join(timeout=5)
        self._tmp.cleanup()

    def test_set_entry_invalid(self):
        with self.assertRaises(InvalidArgumentError):
            self.monitor.set_entry("")
        with self.assertRaises(InvalidArgumentError):
            self.monitor.set_entry(None)
        with self.assertRaises(InvalidArgumentError):
            self.monitor.set_entry(os.path.join(self.root, "missing"))
        self.assertIsNone(self.monitor.entry)

    def test_set_entry_takes_baseline(self):
        self.monitor.set_entry(self.root)
        self.assertEqual(self.monitor.entry, self.root)
        self.assertIn(os.path.join(self.root, "lib", "core.py"), self.monitor.store)
        result = self.monitor.check_and_report()
        self.assertEqual(result.event_count, 0)

    def test_requires_entry(self):
        with self.assertRaises(InvalidArgumentError):
            self.monitor.check_and_report()
        with self.assertRaises(InvalidArgumentError):
            self.monitor.start()

    def test_entry_without_baseline_reports_created(self):
        monitor = FileMonitor(self.root, notifier=self.notifier)
        result = monitor.check_and_report()
        self.assertEqual(len(result.created), 4)

    def test_add_and_remove(self):
        self.monitor.set_entry(self.root)
        removed = self.monitor.remove_file_from_monitor(os.path.join(self.root, "app.cfg"))
        self.assertIsNotNone(removed)
        self.monitor.check_and_report()
        self.assertEqual(self.notifier.created_paths, [os.path.join(self.root, "app.cfg")])
        self.assertIsNone(self.monitor.remove_file_from_monitor(""))

    def test_set_notifier(self):
        other = RecordingNotifier()
        self.monitor.set_entry(self.root)
        self.monitor.set_notifier(other)
        make_tree(self.root, {"extra.txt": "x"})
        self.monitor.check_and_report()
        self.assertEqual(other.created_paths, [os.path.join(self.root, "extra.txt")])
        self.assertEqual(self.notifier.calls, [])

    def test_scheduled_detection(self):
        self.monitor.set_entry(self.root)
        self.monitor.start()
        self.monitor.start()
        self.assertIs(self.monitor.state, SchedulerState.RUNNING)
        make_tree(self.root, {"dropped.sh": "rm -rf /"})
        os.remove(os.path.join(self.root, "app.cfg"))
        self.assertTrue(
            wait_for(lambda: os.path.join(self.root, "dropped.sh") in self.notifier.created_paths)
        )
        self.assertTrue(wait_for(lambda: self.notifier.deleted_batches != []))
        self.assertIn(os.path.join(self.root, "app.cfg"), self.notifier.deleted_batches[0])
        self.monitor.stop()
        self.assertFalse(self.monitor.is_running)
        self.assertTrue(self.monitor.join(timeout=5))
        self.assertGreaterEqual(self.monitor.stats.passes, 1)

    def test_from_config(self):
        config = MonitorConfig(
            entry_path=self.root,
            period=2,
            time_unit=TimeUnit.SECONDS,
            initial_delay_ms=0,
            max_depth=1,
        )
        monitor = FileMonitor.from_config(config, self.notifier)
        monitor.set_entry(self.root)
        self.assertEqual(monitor.entry, self.root)
        self.assertEqual(monitor.engine.max_depth, 1)
        self.assertIn(os.path.join(self.root, "lib"), monitor.store)
        self.assertNotIn(os.path.join(self.root, "lib", "core.py"), monitor.store)
