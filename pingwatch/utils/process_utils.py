"""Process utilities."""
import ctypes
import os
from typing import Optional

import psutil

from pingwatch.core.logger import logger


class ProcessUtils:
    """Utility class for process management."""

    @staticmethod
    def is_admin() -> bool:
        """
        Check if the current process has administrator privileges.

        Raw ICMP sockets need them; without, probes fall back to
        unprivileged datagram sockets.

        Returns:
            True if admin, False otherwise
        """
        try:
            if os.name == "nt":
                return ctypes.windll.shell32.IsUserAnAdmin() != 0
            else:
                return os.geteuid() == 0
        except (OSError, AttributeError) as e:
            logger.debug(f"Error checking admin status: {e}")
            return False
        except Exception as e:
            logger.warning(f"Unexpected error checking admin status: {e}")
            return False

    @staticmethod
    def kill_process_tree(pid: Optional[int]) -> None:
        """
        Kill a process and all its children.

        tracert on Windows and some traceroute wrappers fork helpers, so the
        whole tree goes.

        Args:
            pid: Process ID to kill
        """
        if pid is None:
            return

        try:
            parent = psutil.Process(pid)
            children = parent.children(recursive=True)

            # Kill children first
            for child in children:
                try:
                    child.kill()
                except psutil.NoSuchProcess:
                    pass  # Already dead
                except psutil.AccessDenied:
                    logger.warning(f"Access denied killing child process {child.pid}")

            try:
                parent.kill()
            except psutil.NoSuchProcess:
                pass  # Already dead
            except psutil.AccessDenied:
                logger.warning(f"Access denied killing process {pid}")
        except psutil.NoSuchProcess:
            pass  # Process already dead
        except (psutil.AccessDenied, OSError) as e:
            logger.warning(f"Error killing process tree {pid}: {e}")
