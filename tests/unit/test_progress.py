from __future__ import annotations

from unittest.mock import patch

from asset_hierarchy.services.progress import PollProgress, is_tty_enabled


def test_is_tty_enabled_returns_stdout_isatty():
    with patch('sys.stdout.isatty', return_value=True):
        assert is_tty_enabled() is True

    with patch('sys.stdout.isatty', return_value=False):
        assert is_tty_enabled() is False


class TestPollProgress:

    def test_init_with_tty_enabled(self):
        with patch('asset_hierarchy.services.progress.is_tty_enabled', return_value=True), \
             patch('asset_hierarchy.services.progress.tqdm') as mock_tqdm:
            progress = PollProgress("u-1", description="Waiting")

            assert progress.enabled is True
            mock_tqdm.assert_called_once_with(
                total=None,
                desc="Waiting (u-1)",
                unit="poll",
                leave=False,
                ncols=80,
                ascii=True,
            )

    def test_update_and_close_with_tty(self):
        with patch('asset_hierarchy.services.progress.is_tty_enabled', return_value=True), \
             patch('asset_hierarchy.services.progress.tqdm') as mock_tqdm:
            pbar = mock_tqdm.return_value
            with PollProgress("u-1") as progress:
                progress.update("processing")
                progress.update("completed")

            assert progress.polls == 2
            assert progress.last_status == "completed"
            assert pbar.update.call_count == 2
            pbar.set_postfix.assert_called_with(status="completed")
            pbar.close.assert_called_once()
            assert progress.pbar is None

    def test_disabled_without_tty(self):
        with patch('asset_hierarchy.services.progress.is_tty_enabled', return_value=False), \
             patch('asset_hierarchy.services.progress.tqdm') as mock_tqdm:
            progress = PollProgress("u-2")
            progress.update("uploading")
            progress.close()

            assert progress.enabled is False
            assert progress.pbar is None
            assert progress.polls == 1
            mock_tqdm.assert_not_called()
