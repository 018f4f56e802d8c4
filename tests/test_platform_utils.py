from unittest.mock import patch

from pingwatch.utils.platform_utils import Platform, PlatformUtils


class TestBuildTraceCommand:
    @patch.object(PlatformUtils, "get_platform", return_value=Platform.WINDOWS)
    def test_windows(self, mock_platform):
        """Test tracert flags on Windows."""
        assert PlatformUtils.build_trace_command("10.0.0.1", 2000) == ["tracert", "-d", "-w", "2000", "10.0.0.1"]

    @patch.object(PlatformUtils, "get_platform", return_value=Platform.WINDOWS)
    def test_windows_with_resolution(self, mock_platform):
        assert PlatformUtils.build_trace_command("10.0.0.1", 500, no_resolve=False) == [
            "tracert",
            "-w",
            "500",
            "10.0.0.1",
        ]

    @patch.object(PlatformUtils, "get_platform", return_value=Platform.LINUX)
    def test_linux(self, mock_platform):
        """Test traceroute takes fractional seconds on Linux."""
        assert PlatformUtils.build_trace_command("example.com", 1500) == [
            "traceroute",
            "-n",
            "-w",
            "1.5",
            "example.com",
        ]

    @patch.object(PlatformUtils, "get_platform", return_value=Platform.MACOS)
    def test_macos_rounds_up_to_seconds(self, mock_platform):
        assert PlatformUtils.build_trace_command("10.0.0.1", 100) == ["traceroute", "-n", "-w", "1", "10.0.0.1"]
        assert PlatformUtils.build_trace_command("10.0.0.1", 2500) == ["traceroute", "-n", "-w", "3", "10.0.0.1"]


class TestPlatformHelpers:
    @patch.object(PlatformUtils, "get_platform", return_value=Platform.WINDOWS)
    def test_windows_console_encoding(self, mock_platform):
        assert PlatformUtils.get_console_encoding() == "oem"

    @patch.object(PlatformUtils, "get_platform", return_value=Platform.LINUX)
    def test_posix_helpers(self, mock_platform):
        assert PlatformUtils.get_console_encoding() == "utf-8"
        assert PlatformUtils.get_subprocess_flags() == 0
        assert PlatformUtils.get_trace_binary() == "traceroute"
