from __future__ import annotations

from unittest.mock import patch

from estate_ingest.services.progress import ProgressTracker, is_tty_enabled


def test_is_tty_enabled_returns_stdout_isatty():
    with patch("sys.stdout.isatty", return_value=True):
        assert is_tty_enabled() is True
    with patch("sys.stdout.isatty", return_value=False):
        assert is_tty_enabled() is False


def test_tracker_with_tty_uses_tqdm():
    with patch("estate_ingest.services.progress.is_tty_enabled", return_value=True), \
         patch("estate_ingest.services.progress.tqdm") as mock_tqdm:
        with ProgressTracker(3) as tracker:
            tracker.advance(imported=1, skipped=0, failed=0)
        bar = mock_tqdm.return_value
        assert mock_tqdm.call_args.kwargs["total"] == 3
        assert mock_tqdm.call_args.kwargs["unit"] == "row"
        bar.update.assert_called_once_with(1)
        bar.set_postfix.assert_called_once_with(imported=1, skipped=0, failed=0)
        bar.close.assert_called_once()
        assert tracker.current_row == 1


def test_tracker_disabled_without_tty():
    with patch("estate_ingest.services.progress.tqdm") as mock_tqdm:
        tracker = ProgressTracker(2, enabled=False)
        tracker.advance()
        tracker.close()
        mock_tqdm.assert_not_called()
        assert tracker.pbar is None
        assert tracker.current_row == 1
