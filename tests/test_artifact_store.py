from __future__ import annotations

import io
import os
import threading
from pathlib import Path
from typing import List

import pytest
from PIL import Image

from conftest import png_bytes
from services.artifact_store import ArtifactStore, detect_extension, sanitize_prompt


def _jpeg_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), "blue").save(buffer, format="JPEG")
    return buffer.getvalue()


def test_sanitize_prompt_keeps_a_short_safe_prefix() -> None:
    assert sanitize_prompt("A Cute Cat, with BLUE eyes!") == "a_cute_cat_with_blue_eyes"
    assert sanitize_prompt("x" * 50) == "x" * 30
    assert sanitize_prompt("!!! ???") == "image"
    assert sanitize_prompt("") == "image"


def test_detect_extension_sniffs_the_format() -> None:
    assert detect_extension(png_bytes()) == "png"
    assert detect_extension(_jpeg_bytes()) == "jpg"
    assert detect_extension(b"definitely not an image") == "png"


def test_save_writes_named_file(tmp_path: Path, image_bytes: bytes) -> None:
    store = ArtifactStore(tmp_path / "generated")
    stored = store.save_sync(image_bytes, "Sunset over the sea")

    assert stored.path.read_bytes() == image_bytes
    assert stored.path.parent == tmp_path / "generated"
    millis, _, rest = stored.filename.partition("_")
    assert millis.isdigit()
    assert rest == "sunset_over_the_sea.png"


def test_save_rejects_empty_bytes(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        ArtifactStore(tmp_path).save_sync(b"", "prompt")


def test_eleventh_save_prunes_exactly_the_oldest(tmp_path: Path, image_bytes: bytes) -> None:
    store = ArtifactStore(tmp_path, keep=10)
    saved = [store.save_sync(image_bytes, f"prompt {i}") for i in range(10)]
    for age, artifact in enumerate(reversed(saved)):
        stamp = 1_600_000_000 + (10 - age) * 60
        os.utime(artifact.path, (stamp, stamp))

    newest = store.save_sync(image_bytes, "prompt 10")

    remaining = {p.name for p in tmp_path.iterdir()}
    assert len(remaining) == 10
    assert saved[0].filename not in remaining
    assert newest.filename in remaining
    assert all(a.filename in remaining for a in saved[1:])


def test_prune_reports_removed_count(tmp_path: Path, image_bytes: bytes) -> None:
    for i in range(5):
        path = tmp_path / f"160000000000{i}_img.png"
        path.write_bytes(image_bytes)
        os.utime(path, (1_600_000_000 + i, 1_600_000_000 + i))

    store = ArtifactStore(tmp_path, keep=2)
    assert store.prune() == 3
    assert sorted(p.name for p in store.list_files()) == ["1600000000003_img.png", "1600000000004_img.png"]
    assert store.prune() == 0


def test_prune_leaves_foreign_files_alone(tmp_path: Path, image_bytes: bytes) -> None:
    (tmp_path / ".gitkeep").write_text("", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("keep me", encoding="utf-8")
    (tmp_path / "holiday.png").write_bytes(image_bytes)

    store = ArtifactStore(tmp_path, keep=1)
    store.save_sync(image_bytes, "first")
    store.save_sync(image_bytes, "second")

    names = {p.name for p in tmp_path.iterdir()}
    assert {".gitkeep", "notes.txt", "holiday.png"} <= names
    assert len(store.list_files()) == 1


def test_concurrent_saves_never_fail(tmp_path: Path, image_bytes: bytes) -> None:
    store = ArtifactStore(tmp_path, keep=2)
    errors: List[BaseException] = []

    def worker(index: int) -> None:
        for j in range(30):
            try:
                store.save_sync(image_bytes, f"p{index}-{j}")
            except Exception as exc:  # pylint: disable=broad-exception-caught
                errors.append(exc)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert len(store.list_files()) == 2


def test_list_files_skips_files_that_vanish(tmp_path: Path, image_bytes: bytes, monkeypatch) -> None:
    store = ArtifactStore(tmp_path)
    kept = store.save_sync(image_bytes, "kept")
    gone = tmp_path / "1500000000000_gone.png"
    gone.write_bytes(image_bytes)

    real_iterdir = Path.iterdir

    def iterdir_then_delete(self):
        entries = list(real_iterdir(self))
        gone.unlink()
        return iter(entries)

    monkeypatch.setattr(Path, "iterdir", iterdir_then_delete)
    assert [p.name for p in store.list_files()] == [kept.filename]


def test_ensure_directory_creates_nested_path(tmp_path: Path) -> None:
    store = ArtifactStore(tmp_path / "a" / "b")
    store.ensure_directory()
    assert (tmp_path / "a" / "b").is_dir()
    assert store.list_files() == []


def test_ensure_directory_refuses_to_replace_a_file(tmp_path: Path) -> None:
    target = tmp_path / "generated"
    target.write_text("not a directory", encoding="utf-8")

    with pytest.raises(RuntimeError, match="not a directory"):
        ArtifactStore(target).ensure_directory()
    assert target.read_text(encoding="utf-8") == "not a directory"
