"""Tests for hardware address discovery and synthesis."""

import os
import random
import shutil
import tempfile
import unittest
from unittest.mock import patch

from airmirror.utils.hwaddr import (
    find_hw_addr, format_hw_addr, parse_hw_addr, random_hw_addr, resolve_hw_addr,
    LOCAL_BIT, MULTICAST_BIT,
)


class TestRandomHwAddr(unittest.TestCase):

    def test_locally_administered_unicast(self):
        """Test every generated address has the local bit set and multicast bit clear."""
        for _ in range(1000):
            hw_addr = random_hw_addr()
            self.assertEqual(len(hw_addr), 6)
            self.assertEqual(hw_addr[0] & MULTICAST_BIT, 0)
            self.assertEqual(hw_addr[0] & LOCAL_BIT, LOCAL_BIT)

    def test_seeded_generator(self):
        """Test an injected generator makes the output reproducible."""
        self.assertEqual(random_hw_addr(random.Random(7)), random_hw_addr(random.Random(7)))


class TestParseHwAddr(unittest.TestCase):

    def test_parse(self):
        self.assertEqual(parse_hw_addr("b8:27:eb:01:02:ff"),
                         bytes([0xb8, 0x27, 0xeb, 0x01, 0x02, 0xff]))
        self.assertEqual(parse_hw_addr("B8:27:EB:01:02:FF\n"),
                         bytes([0xb8, 0x27, 0xeb, 0x01, 0x02, 0xff]))

    def test_format(self):
        self.assertEqual(format_hw_addr(bytes([0x02, 0, 0x0a, 0xff, 1, 2])), "02:00:0a:ff:01:02")
        self.assertEqual(format_hw_addr(parse_hw_addr("B8:27:EB:01:02:FF")), "b8:27:eb:01:02:ff")

    def test_rejected_formats(self):
        """Test only six two-digit hex groups are accepted."""
        for text in ("b8:27:eb:01:02", "b8:27:eb:01:02:03:04", "b8-27-eb-01-02-03",
                     "b8:27:eb:01:02:0g", "b8:27:eb:1:02:03", "", "b8:27:eb:01:02:003"):
            with self.assertRaises(ValueError, msg=text):
                parse_hw_addr(text)


class TestFindHwAddr(unittest.TestCase):
    """Test cases for interface address files."""

    def setUp(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        """Clean up test environment."""
        shutil.rmtree(self.temp_dir)

    def _address_file(self, name, content):
        path = os.path.join(self.temp_dir, name)
        with open(path, 'w') as f:
            f.write(content)
        return path

    def test_first_readable_file_wins(self):
        eth0 = self._address_file("eth0", "b8:27:eb:00:00:01\n")
        wlan0 = self._address_file("wlan0", "b8:27:eb:00:00:02\n")
        self.assertEqual(find_hw_addr([eth0, wlan0]), "b8:27:eb:00:00:01")

    def test_missing_file_skipped(self):
        missing = os.path.join(self.temp_dir, "eth0")
        wlan0 = self._address_file("wlan0", "b8:27:eb:00:00:02\n")
        self.assertEqual(find_hw_addr([missing, wlan0]), "b8:27:eb:00:00:02")

    def test_unusable_file_skipped(self):
        empty = self._address_file("eth0", "")
        garbage = self._address_file("eth1", "not an address\n")
        wlan0 = self._address_file("wlan0", "b8:27:eb:00:00:02\n")
        self.assertEqual(find_hw_addr([empty, garbage, wlan0]), "b8:27:eb:00:00:02")

    def test_nothing_found(self):
        self.assertIsNone(find_hw_addr([os.path.join(self.temp_dir, "eth0")]))

    def test_resolve_uses_address_file(self):
        eth0 = self._address_file("eth0", "b8:27:eb:00:00:01\n")
        self.assertEqual(resolve_hw_addr(paths=[eth0]), bytes([0xb8, 0x27, 0xeb, 0, 0, 1]))

    @patch('airmirror.utils.hwaddr.logger')
    def test_resolve_falls_back_to_random(self, mock_logger):
        """Test a random address is used and reported when no interface file works."""
        hw_addr = resolve_hw_addr(paths=[os.path.join(self.temp_dir, "eth0")])

        self.assertEqual(hw_addr[0] & MULTICAST_BIT, 0)
        self.assertEqual(hw_addr[0] & LOCAL_BIT, LOCAL_BIT)
        mock_logger.info.assert_called_once()
        self.assertIn(format_hw_addr(hw_addr), mock_logger.info.call_args[0][0])

    @patch('airmirror.utils.hwaddr.find_hw_addr')
    def test_force_random_skips_interface_files(self, mock_find):
        hw_addr = resolve_hw_addr(force_random=True)

        mock_find.assert_not_called()
        self.assertEqual(hw_addr[0] & LOCAL_BIT, LOCAL_BIT)


if __name__ == '__main__':
    unittest.main()
