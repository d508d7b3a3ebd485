import unittest

from config import (
    Config,
    CURRENT_CONFIG_VERSION,
    apply_dict_to_dataclass,
    migrate_config,
    spec_size,
    validate_config,
)


class TestConfigMigration(unittest.TestCase):
    def test_missing_version_sets_defaults_and_bumps(self):
        cfg = Config()
        data = {
            # version intentionally omitted to simulate legacy file
            "analyzer": {},
            "serial": {},
        }

        apply_dict_to_dataclass(cfg, data)
        migrate_config(cfg, data.get("version"))

        self.assertEqual(cfg.version, CURRENT_CONFIG_VERSION)
        self.assertEqual(cfg.analyzer.peak_hold_time, 10)
        self.assertEqual(cfg.serial.baud_rate, 57600)

    def test_none_values_are_sanitized(self):
        cfg = Config()
        data = {
            "version": 0,
            "analyzer": {"peak_decay_step": None, "db_floor": None, "gain_step": None},
            "display": {"fps": None},
            "log_level": None,
        }

        apply_dict_to_dataclass(cfg, data)
        migrate_config(cfg, data.get("version"))

        self.assertEqual(cfg.version, CURRENT_CONFIG_VERSION)
        self.assertEqual(cfg.analyzer.peak_decay_step, 1.0)
        self.assertEqual(cfg.analyzer.db_floor, -200.0)
        self.assertEqual(cfg.analyzer.gain_step, 5.0)
        self.assertEqual(cfg.display.fps, 30)
        self.assertEqual(cfg.log_level, "INFO")

    def test_nulls_in_current_version_are_restored(self):
        cfg = Config()
        data = {
            "version": CURRENT_CONFIG_VERSION,
            "analyzer": {"buffer_size": None, "peak_hold_time": None},
            "display": {"columns": None},
        }

        apply_dict_to_dataclass(cfg, data)
        migrate_config(cfg, data.get("version"))

        self.assertEqual(cfg.analyzer.buffer_size, 1024)
        self.assertEqual(cfg.analyzer.peak_hold_time, 10)
        self.assertEqual(cfg.display.columns, 2)
        validate_config(cfg)

    def test_preserves_custom_values(self):
        cfg = Config()
        data = {
            "version": 1,
            "analyzer": {"channel_count": 2, "peak_hold_time": 4},
            "audio": {"device_index": 3, "demo": True},
            "unknown_section": {"x": 1},
        }

        apply_dict_to_dataclass(cfg, data)
        migrate_config(cfg, data.get("version"))

        self.assertEqual(cfg.analyzer.channel_count, 2)
        self.assertEqual(cfg.analyzer.peak_hold_time, 4)
        self.assertEqual(cfg.audio.device_index, 3)
        self.assertTrue(cfg.audio.demo)
        self.assertFalse(hasattr(cfg, "unknown_section"))

    def test_non_dict_section_keeps_defaults(self):
        cfg = Config()
        apply_dict_to_dataclass(cfg, {"analyzer": 5})
        self.assertEqual(cfg.analyzer.buffer_size, 1024)


class TestValidateConfig(unittest.TestCase):
    def test_defaults_are_valid(self):
        validate_config(Config())
        self.assertEqual(spec_size(1024), 513)

    def test_rejects_bad_values(self):
        cases = {
            "buffer_size": 1,
            "channel_count": 9,
            "bins_per_band": 0,
            "display_width": 514,
            "peak_hold_time": -1,
            "peak_decay_step": 0.0,
            "sample_rate": 0.0,
        }
        for name, value in cases.items():
            with self.subTest(field=name):
                cfg = Config()
                setattr(cfg.analyzer, name, value)
                with self.assertRaises(ValueError):
                    validate_config(cfg)

        cfg = Config()
        cfg.display.fps = 0
        with self.assertRaises(ValueError):
            validate_config(cfg)


if __name__ == "__main__":
    unittest.main()
