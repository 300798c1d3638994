import json
import os
import tempfile
import unittest

from fretwise.core.config import DEFAULT_CONFIGS, ConfigManager
from fretwise.core.events import EventEmitter, SessionEventType


class TestConfigManager(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.config_dir = os.path.join(self.tmp.name, "fretwise")

    def tearDown(self):
        self.tmp.cleanup()

    def test_defaults_are_written(self):
        manager = ConfigManager(self.config_dir)
        for name in DEFAULT_CONFIGS:
            self.assertTrue(os.path.exists(os.path.join(self.config_dir, f"{name}.json")))
        self.assertEqual(manager.get_config("scoring"), DEFAULT_CONFIGS["scoring"])
        self.assertEqual(manager.get_config("session")["max_detected_notes"], 50)

    def test_get_config_returns_a_copy(self):
        manager = ConfigManager(self.config_dir)
        manager.get_config("tempo")["min_bpm"] = 1
        self.assertEqual(manager.get_config("tempo")["min_bpm"], 40)

    def test_unknown_section(self):
        manager = ConfigManager(self.config_dir)
        self.assertEqual(manager.get_config("visualizer"), {})
        self.assertFalse(manager.update_config("visualizer", {"fps": 60}))
        self.assertFalse(manager.reset_config("visualizer"))

    def test_update_persists(self):
        ConfigManager(self.config_dir).update_config("scoring", {"timing_window_ms": 250.0})
        reloaded = ConfigManager(self.config_dir)
        self.assertEqual(reloaded.get_config("scoring")["timing_window_ms"], 250.0)
        self.assertEqual(reloaded.get_config("scoring")["pitch_tolerance_cents"], 50.0)

    def test_missing_keys_are_filled_from_defaults(self):
        os.makedirs(self.config_dir)
        with open(os.path.join(self.config_dir, "tempo.json"), "w") as f:
            json.dump({"max_bpm": 300}, f)
        tempo = ConfigManager(self.config_dir).get_config("tempo")
        self.assertEqual(tempo["max_bpm"], 300)
        self.assertEqual(tempo["min_onsets"], 4)

    def test_corrupt_file_falls_back_to_defaults(self):
        os.makedirs(self.config_dir)
        with open(os.path.join(self.config_dir, "session.json"), "w") as f:
            f.write("{not json")
        with self.assertLogs("fretwise.core.config", level="ERROR"):
            manager = ConfigManager(self.config_dir)
        self.assertEqual(manager.get_config("session"), DEFAULT_CONFIGS["session"])

    def test_non_object_file_is_ignored(self):
        os.makedirs(self.config_dir)
        with open(os.path.join(self.config_dir, "analyzer.json"), "w") as f:
            json.dump([1, 2, 3], f)
        manager = ConfigManager(self.config_dir)
        self.assertEqual(manager.get_config("analyzer"), DEFAULT_CONFIGS["analyzer"])

    def test_reset(self):
        manager = ConfigManager(self.config_dir)
        manager.update_config("audio_input", {"frame_size": 4096})
        self.assertTrue(manager.reset_config("audio_input"))
        self.assertEqual(manager.get_config("audio_input")["frame_size"], 2048)
        self.assertEqual(
            ConfigManager(self.config_dir).get_config("audio_input")["frame_size"], 2048
        )

    def test_defaults_are_not_shared(self):
        manager = ConfigManager(self.config_dir)
        manager.update_config("session", {"tick_interval": 0.5})
        self.assertEqual(DEFAULT_CONFIGS["session"]["tick_interval"], 0.1)


class TestEventEmitter(unittest.TestCase):
    def test_emit_reaches_listeners(self):
        emitter = EventEmitter()
        received = []
        emitter.on(SessionEventType.BPM_CHANGED, received.append)
        emitter.emit(SessionEventType.BPM_CHANGED, 120)
        emitter.emit(SessionEventType.NOTE_DETECTED, "ignored")
        self.assertEqual(received, [120])

    def test_listener_registered_once(self):
        emitter = EventEmitter()
        received = []
        emitter.on(SessionEventType.ERROR, received.append)
        emitter.on(SessionEventType.ERROR, received.append)
        emitter.emit(SessionEventType.ERROR, "x")
        self.assertEqual(received, ["x"])

    def test_off_and_clear(self):
        emitter = EventEmitter()
        received = []
        emitter.on(SessionEventType.ERROR, received.append)
        emitter.off(SessionEventType.ERROR, received.append)
        emitter.off(SessionEventType.ERROR, received.append)
        emitter.emit(SessionEventType.ERROR, "x")
        emitter.on(SessionEventType.ERROR, received.append)
        emitter.clear()
        emitter.emit(SessionEventType.ERROR, "y")
        self.assertEqual(received, [])

    def test_failing_listener_is_logged(self):
        emitter = EventEmitter()
        received = []

        def broken(value):
            raise ValueError("broken listener")

        emitter.on(SessionEventType.ERROR, broken)
        emitter.on(SessionEventType.ERROR, received.append)
        with self.assertLogs("fretwise.core.events", level="ERROR"):
            emitter.emit(SessionEventType.ERROR, "x")
        self.assertEqual(received, ["x"])


if __name__ == "__main__":
    unittest.main()
