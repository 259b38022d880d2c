"""Tests for the local media store."""
from __future__ import annotations

import pytest

from wishlist.services.media import LocalMediaStore


def test_delete_removes_file(tmp_path):
    (tmp_path / "kudos").mkdir()
    target = tmp_path / "kudos" / "a.jpg"
    target.write_bytes(b"jpeg")

    LocalMediaStore(tmp_path).delete("kudos/a.jpg")

    assert not target.exists()


def test_delete_missing_file_is_a_no_op(tmp_path):
    LocalMediaStore(tmp_path).delete("kudos/never-uploaded.jpg")


def test_keys_cannot_escape_root(tmp_path):
    outside = tmp_path / "outside.txt"
    outside.write_text("keep", encoding="utf-8")
    store = LocalMediaStore(tmp_path / "media")

    with pytest.raises(ValueError):
        store.delete("../outside.txt")
    assert outside.exists()
