"""Tests for core.vfs — entry protection, atomic patches, persistence."""

import json
import threading

import pytest

from core.vfs import DEFAULT_ENTRY_CONTENT, MULTIFILE_TAG, Patch, VirtualFileStore


def test_new_store_has_entry_file():
    store = VirtualFileStore()
    assert store.list_paths() == ["App.tsx"]
    assert store.read("App.tsx") == DEFAULT_ENTRY_CONTENT


def test_custom_entry_path():
    store = VirtualFileStore(entry_path="main.jsx")
    assert "main.jsx" in store
    assert "App.tsx" not in store


def test_read_missing_returns_none():
    assert VirtualFileStore().read("Nope.tsx") is None


def test_write_and_overwrite():
    store = VirtualFileStore()
    store.write("Button.tsx", "v1")
    store.write("Button.tsx", "v2")
    assert store.read("Button.tsx") == "v2"
    assert len(store) == 2


@pytest.mark.parametrize("path,content", [("", "x"), (None, "x"), ("A.tsx", None), ("A.tsx", 3)])
def test_write_rejects_bad_input(path, content):
    store = VirtualFileStore()
    with pytest.raises(ValueError):
        store.write(path, content)
    assert store.list_paths() == ["App.tsx"]


def test_entry_cannot_be_deleted():
    store = VirtualFileStore()
    assert store.delete("App.tsx") is False
    assert store.exists("App.tsx")


def test_delete_reports_whether_removed():
    store = VirtualFileStore({"A.tsx": "a"})
    assert store.delete("A.tsx") is True
    assert store.delete("A.tsx") is False


def test_list_paths_sorted_with_entry_last():
    store = VirtualFileStore({"b.tsx": "b", "App.tsx": "app", "a.tsx": "a", "Z.tsx": "z"})
    assert store.list_paths() == ["Z.tsx", "a.tsx", "b.tsx", "App.tsx"]


def test_preview_code_evaluates_entry_last():
    store = VirtualFileStore({"App.tsx": "ENTRY", "Card.tsx": "CARD", "Alpha.tsx": "ALPHA"})
    assert store.build_preview_code() == "ALPHA\n\nCARD\n\nENTRY"


def test_project_context_sections_and_truncation():
    store = VirtualFileStore({"App.tsx": "entry", "Card.tsx": "card"})
    context = store.to_project_context()
    assert context == "--- Card.tsx ---\ncard\n\n--- App.tsx ---\nentry"
    assert store.to_project_context(max_chars=10) == context[:10]


def test_file_tree():
    store = VirtualFileStore({"Card.tsx": "card"})
    assert store.file_tree() == "Card.tsx\nApp.tsx"


# ---------------------------------------------------------------------------
# Patches
# ---------------------------------------------------------------------------

def test_patch_writes_then_deletes():
    store = VirtualFileStore({"Old.tsx": "old", "Keep.tsx": "keep"})
    store.apply_patch(Patch(writes=[("New.tsx", "new"), ("Old.tsx", "rewritten")],
                            deletes=["Old.tsx"]))
    assert store.list_paths() == ["Keep.tsx", "New.tsx", "App.tsx"]


def test_patch_never_deletes_entry():
    store = VirtualFileStore({"App.tsx": "entry", "A.tsx": "a"})
    store.apply_patch(Patch(writes=[("App.tsx", "new entry")], deletes=["App.tsx", "A.tsx"]))
    assert store.list_paths() == ["App.tsx"]
    assert store.read("App.tsx") == "new entry"


def test_patch_deleting_missing_path_is_ignored():
    store = VirtualFileStore()
    store.apply_patch(Patch(deletes=["Ghost.tsx"]))
    assert store.list_paths() == ["App.tsx"]


def test_failed_patch_leaves_store_unchanged():
    store = VirtualFileStore({"A.tsx": "a"})
    before = store.snapshot()
    bad = Patch(writes=[("B.tsx", "b"), ("C.tsx", None)], deletes=["A.tsx"])
    with pytest.raises(ValueError):
        store.apply_patch(bad)
    assert store.snapshot() == before


def test_failed_delete_leaves_store_unchanged():
    store = VirtualFileStore({"A.tsx": "a"})
    before = store.snapshot()
    with pytest.raises(ValueError):
        store.apply_patch(Patch(writes=[("B.tsx", "b")], deletes=[None]))
    assert store.snapshot() == before


def test_readers_never_see_half_applied_patch():
    store = VirtualFileStore({"A.tsx": "0", "B.tsx": "0"})
    stop = threading.Event()
    torn = []

    def reader():
        while not stop.is_set():
            snap = store.snapshot()
            if snap["A.tsx"] != snap["B.tsx"]:
                torn.append(snap)

    thread = threading.Thread(target=reader)
    thread.start()
    for i in range(1, 500):
        store.apply_patch(Patch(writes=[("A.tsx", str(i)), ("B.tsx", str(i))]))
    stop.set()
    thread.join()
    assert torn == []


def test_patch_from_result_accepts_dicts_and_objects():
    from core.schemas import GeneratedFile

    patch = Patch.from_result(
        [{"path": "A.tsx", "content": "a"}, GeneratedFile(path="B.tsx", content="b")],
        ["C.tsx"],
    )
    assert patch.writes == [("A.tsx", "a"), ("B.tsx", "b")]
    assert patch.deletes == ["C.tsx"]


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

def test_single_file_serializes_to_bare_content():
    store = VirtualFileStore({"App.tsx": "just the app"})
    assert store.serialize() == "just the app"


def test_multi_file_serializes_to_tagged_json():
    store = VirtualFileStore({"App.tsx": "app", "A.tsx": "a"})
    data = json.loads(store.serialize())
    assert data[MULTIFILE_TAG] is True
    assert data["files"] == {"App.tsx": "app", "A.tsx": "a"}


def test_serialize_round_trip():
    store = VirtualFileStore({"App.tsx": "app", "A.tsx": "a", "nested/B.tsx": "b"})
    restored = VirtualFileStore.deserialize(store.serialize())
    assert restored.snapshot() == store.snapshot()
    assert restored.list_paths() == store.list_paths()


def test_deserialize_bare_content():
    store = VirtualFileStore.deserialize("function App() {}")
    assert store.snapshot() == {"App.tsx": "function App() {}"}


def test_deserialize_empty_gives_default_project():
    assert VirtualFileStore.deserialize("").read("App.tsx") == DEFAULT_ENTRY_CONTENT
    assert VirtualFileStore.deserialize(None).read("App.tsx") == DEFAULT_ENTRY_CONTENT


@pytest.mark.parametrize("raw", [
    '{"__multifile": true, "files": ["not", "a", "map"]}',
    '{"__multifile": true, "files": {"A.tsx": 3}}',
    '{"some": "json"}',
    '[1, 2, 3]',
    '{"__multifile": true, "files": {"A.tsx": "a"',
])
def test_deserialize_malformed_becomes_entry_content(raw):
    store = VirtualFileStore.deserialize(raw)
    assert store.snapshot() == {"App.tsx": raw}


def test_deserialize_multifile_without_entry_adds_default():
    raw = json.dumps({MULTIFILE_TAG: True, "files": {"A.tsx": "a"}})
    store = VirtualFileStore.deserialize(raw)
    assert store.list_paths() == ["A.tsx", "App.tsx"]
    assert store.read("App.tsx") == DEFAULT_ENTRY_CONTENT
