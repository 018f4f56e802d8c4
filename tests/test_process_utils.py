from unittest.mock import MagicMock, patch

import psutil

from pingwatch.utils.process_utils import ProcessUtils


class TestProcessUtils:
    @patch("pingwatch.utils.process_utils.os.name", "nt")
    @patch("pingwatch.utils.process_utils.ctypes")
    def test_is_admin_windows(self, mock_ctypes):
        """Test is_admin on Windows."""
        mock_ctypes.windll.shell32.IsUserAnAdmin.return_value = 1
        assert ProcessUtils.is_admin() is True

        mock_ctypes.windll.shell32.IsUserAnAdmin.return_value = 0
        assert ProcessUtils.is_admin() is False

    @patch("pingwatch.utils.process_utils.os.name", "posix")
    @patch("os.geteuid", create=True)
    def test_is_admin_posix(self, mock_geteuid):
        """Test is_admin on POSIX."""
        mock_geteuid.return_value = 0
        assert ProcessUtils.is_admin() is True

        mock_geteuid.return_value = 1000
        assert ProcessUtils.is_admin() is False

    @patch("psutil.Process")
    def test_kill_process_tree(self, mock_process_cls):
        """Test that children are killed before the parent."""
        order = []
        child = MagicMock(pid=2)
        child.kill.side_effect = lambda: order.append("child")
        parent = MagicMock()
        parent.children.return_value = [child]
        parent.kill.side_effect = lambda: order.append("parent")
        mock_process_cls.return_value = parent

        ProcessUtils.kill_process_tree(1)

        parent.children.assert_called_once_with(recursive=True)
        assert order == ["child", "parent"]

    @patch("psutil.Process")
    def test_kill_process_tree_already_gone(self, mock_process_cls):
        """Test that a vanished process is not an error."""
        mock_process_cls.side_effect = psutil.NoSuchProcess(1)
        ProcessUtils.kill_process_tree(1)

    @patch("psutil.Process")
    def test_kill_process_tree_child_vanishes(self, mock_process_cls):
        child = MagicMock(pid=2)
        child.kill.side_effect = psutil.NoSuchProcess(2)
        parent = MagicMock()
        parent.children.return_value = [child]
        mock_process_cls.return_value = parent

        ProcessUtils.kill_process_tree(1)
        parent.kill.assert_called_once()

    def test_kill_process_tree_none(self):
        ProcessUtils.kill_process_tree(None)
