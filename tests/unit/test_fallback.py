"""Tests for pdfturn.fallback module."""

import os
from unittest.mock import patch

import pytest

from pdfturn.fallback import BlobHandle, FallbackView


class TestBlobHandle:
    def test_writes_bytes(self):
        blob = BlobHandle(b"%PDF-1.7 data")
        try:
            assert blob.path.read_bytes() == b"%PDF-1.7 data"
            assert blob.path.suffix == ".pdf"
            assert blob.uri.startswith("file://")
            assert blob.released is False
        finally:
            blob.release()

    def test_release_removes_file(self):
        blob = BlobHandle(b"data")
        blob.release()
        assert blob.released is True
        assert not blob.path.exists()

    def test_release_is_idempotent(self):
        blob = BlobHandle(b"data")
        blob.release()
        blob.release()
        assert not blob.path.exists()

    def test_uri_after_release_raises(self):
        blob = BlobHandle(b"data")
        blob.release()
        with pytest.raises(ValueError, match="released"):
            blob.uri

    def test_context_manager_releases_on_error(self):
        with pytest.raises(RuntimeError):
            with BlobHandle(b"data") as blob:
                path = blob.path
                raise RuntimeError("viewer crashed")
        assert not path.exists()

    def test_write_failure_leaves_no_file(self, temp_dir):
        def failing_fdopen(fd, mode):
            os.close(fd)
            raise OSError("disk full")

        with patch("pdfturn.fallback.os.fdopen", side_effect=failing_fdopen):
            with patch("pdfturn.fallback.tempfile.tempdir", str(temp_dir)):
                with pytest.raises(OSError, match="disk full"):
                    BlobHandle(b"data")
        assert list(temp_dir.iterdir()) == []


class TestFallbackView:
    def test_for_page(self):
        with BlobHandle(b"data") as blob:
            view = FallbackView.for_page(blob, 3, "engine failed")
            assert view.uri == f"{blob.uri}#page=3&view=FitH&toolbar=0&navpanes=0"
        assert view.page_number == 3
        assert view.reason == "engine failed"

    def test_notice(self):
        view = FallbackView("file:///tmp/x.pdf#page=5", 5, "timeout")
        assert view.notice == "Using compatibility mode for preview. Only showing page 5."
