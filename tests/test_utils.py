from datetime import timezone
from unittest.mock import patch

from system_catalog.utils import time as time_utils


def test_utc_now_is_timezone_aware():
    assert time_utils.utc_now().tzinfo == timezone.utc


def test_utc_now_iso_uses_z_suffix():
    stamp = time_utils.utc_now_iso()
    assert stamp.endswith("Z")
    assert "+00:00" not in stamp


def test_now_ms():
    with patch("system_catalog.utils.time.time.time", return_value=1700000000.1234):
        assert time_utils.now_ms() == 1700000000123
