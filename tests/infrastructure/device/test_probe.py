"""Tests for LocalDeviceEnvironment."""

from unittest.mock import patch

from infrastructure.device.probe import LocalDeviceEnvironment


class TestLocalDeviceEnvironment:
    """Tests for LocalDeviceEnvironment class."""

    def test_foreground_flag(self, tmp_path):
        env = LocalDeviceEnvironment(tmp_path)
        assert env.is_foreground()
        env.set_foreground(False)
        assert not env.is_foreground()

    def test_starts_in_background(self, tmp_path):
        assert not LocalDeviceEnvironment(tmp_path, foreground=False).is_foreground()

    def test_free_space_positive(self, tmp_path):
        free = LocalDeviceEnvironment(tmp_path).estimate_free_space()
        assert isinstance(free, int)
        assert free > 0

    def test_free_space_for_missing_directory(self, tmp_path):
        env = LocalDeviceEnvironment(tmp_path / 'not' / 'yet' / 'created')
        assert env.estimate_free_space() is not None

    def test_free_space_unknown_on_error(self, tmp_path):
        with patch('infrastructure.device.probe.psutil.disk_usage', side_effect=OSError('denied')):
            assert LocalDeviceEnvironment(tmp_path).estimate_free_space() is None
