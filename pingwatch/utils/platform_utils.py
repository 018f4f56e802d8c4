"""Platform detection and abstraction utilities."""
import math
import os
import platform
import shutil
from enum import Enum
from typing import List, Optional


class Platform(Enum):
    """Operating system platforms."""
    WINDOWS = "windows"
    MACOS = "macos"
    LINUX = "linux"


class PlatformUtils:
    """Utility class for platform detection and abstraction."""

    @staticmethod
    def get_platform() -> Platform:
        """
        Detect the current operating system.

        Returns:
            Platform enum value: Platform.WINDOWS, Platform.MACOS, or Platform.LINUX
        """
        system = platform.system()
        if system == "Windows" or os.name == "nt":
            return Platform.WINDOWS
        elif system == "Darwin":
            return Platform.MACOS
        else:
            return Platform.LINUX

    @staticmethod
    def get_trace_binary() -> str:
        """Name of the path-trace executable on this platform."""
        if PlatformUtils.get_platform() == Platform.WINDOWS:
            return "tracert"
        return "traceroute"

    @staticmethod
    def find_trace_binary() -> Optional[str]:
        """Resolve the path-trace executable on PATH, or None if missing."""
        return shutil.which(PlatformUtils.get_trace_binary())

    @staticmethod
    def build_trace_command(address: str, hop_timeout_ms: int, no_resolve: bool = True) -> List[str]:
        """
        Build the argument vector for one path-trace run.

        Args:
            address: Destination host or IP
            hop_timeout_ms: Per-hop wait in milliseconds
            no_resolve: Skip reverse DNS on hop addresses

        Returns:
            Argument list suitable for create_subprocess_exec
        """
        plat = PlatformUtils.get_platform()
        cmd = [PlatformUtils.get_trace_binary()]

        if plat == Platform.WINDOWS:
            # tracert: -d (no resolve), -w (timeout in ms)
            if no_resolve:
                cmd.append("-d")
            cmd += ["-w", str(hop_timeout_ms)]
        elif plat == Platform.MACOS:
            # BSD traceroute only takes whole seconds
            if no_resolve:
                cmd.append("-n")
            cmd += ["-w", str(max(1, math.ceil(hop_timeout_ms / 1000)))]
        else:
            if no_resolve:
                cmd.append("-n")
            cmd += ["-w", f"{hop_timeout_ms / 1000:g}"]

        cmd.append(address)
        return cmd

    @staticmethod
    def get_console_encoding() -> str:
        """Encoding used by console tools' stdout."""
        if PlatformUtils.get_platform() == Platform.WINDOWS:
            return "oem"
        return "utf-8"

    @staticmethod
    def get_subprocess_flags() -> int:
        """
        Get platform-specific subprocess creation flags.

        Returns:
            CREATE_NO_WINDOW flag on Windows, 0 on other platforms
        """
        import subprocess

        if PlatformUtils.get_platform() == Platform.WINDOWS:
            # CREATE_NO_WINDOW only exists on Windows
            return getattr(subprocess, "CREATE_NO_WINDOW", 0x08000000)
        return 0
