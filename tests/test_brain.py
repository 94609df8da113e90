"""Tests for Brain – the note lifecycle orchestrator."""

from __future__ import annotations

import json
import logging
import threading
from unittest.mock import patch

import pytest

from second_brain.brain import Brain
from second_brain.config import Config
from second_brain.context import Context
from second_brain.errors import EmbeddingError, PersistenceError
from second_brain.persistence import NoteFile
from conftest import FakeEmbedder


def _brain(tmp_path, embedder) -> Brain:
    return Brain(data_dir=tmp_path, embedder=embedder, config=Config())


class TestBrainAdd:
    def test_add_returns_note_with_id_and_embedding(self, brain: Brain):
        note = brain.add("Redis caching reduced API latency by 60%", tags=["perf"], project="api")
        assert note.id
        assert note.tags == frozenset({"perf"})
        assert note.project == "api"
        assert note.has_embedding

    def test_add_increments_count(self, brain: Brain):
        brain.add("First note.")
        brain.add("Second note.")
        assert brain.count() == 2

    def test_add_persists_full_collection(self, brain: Brain, tmp_path):
        brain.add("First note.")
        brain.add("Second note.")
        saved = json.loads((tmp_path / "notes.json").read_text())
        assert [n["content"] for n in saved] == ["First note.", "Second note."]

    def test_add_ids_are_unique(self, brain: Brain):
        ids = {brain.add(f"note {i}").id for i in range(10)}
        assert len(ids) == 10

    def test_embedding_failure_saves_nothing(self, tmp_path):
        brain = _brain(tmp_path, FakeEmbedder(fail_on=["bad"]))
        with pytest.raises(EmbeddingError):
            brain.add("bad")
        assert brain.count() == 0
        assert not (tmp_path / "notes.json").exists()

    def test_persistence_failure_leaves_memory_unchanged(self, brain: Brain):
        brain.add("kept")
        with patch.object(NoteFile, "save", side_effect=PersistenceError("disk full")):
            with pytest.raises(PersistenceError):
                brain.add("lost")
        assert [n.content for n in brain.list_notes()] == ["kept"]

    def test_concurrent_adds_are_all_persisted(self, tmp_path):
        brain = _brain(tmp_path, FakeEmbedder())
        threads = [
            threading.Thread(target=brain.add, args=(f"note {i}",)) for i in range(20)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert brain.count() == 20
        assert len(NoteFile(tmp_path / "notes.json").load()) == 20


class TestBrainSearch:
    def test_search_ranks_by_similarity(self, tmp_path):
        embedder = FakeEmbedder(
            vectors={
                "redis": [1.0, 0.0, 0.0],
                "tabs": [0.0, 1.0, 0.0],
                "query": [0.9, 0.1, 0.0],
            }
        )
        brain = _brain(tmp_path, embedder)
        brain.add("redis", tags=["perf"])
        brain.add("tabs", tags=["style"])

        results = brain.search("query", limit=10)
        assert [r.note.content for r in results] == ["redis", "tabs"]
        assert results[0].similarity > results[1].similarity

        filtered = brain.search("query", limit=10, tags=["perf"])
        assert [r.note.content for r in filtered] == ["redis"]

    def test_identical_text_ranks_first(self, brain: Brain):
        brain.add("alpha")
        brain.add("beta")
        brain.add("gamma")
        results = brain.search("beta")
        assert results[0].note.content == "beta"
        assert results[0].similarity == pytest.approx(1.0, abs=1e-5)

    def test_limit(self, brain: Brain):
        for i in range(10):
            brain.add(f"fact {i}")
        assert len(brain.search("fact", limit=3)) == 3

    def test_non_positive_limit_means_all(self, brain: Brain):
        for i in range(8):
            brain.add(f"fact {i}")
        assert len(brain.search("fact", limit=0)) == 8
        assert len(brain.search("fact", limit=-1)) == 8

    def test_empty_store_returns_empty_list(self, brain: Brain):
        assert brain.search("anything") == []

    def test_query_embedding_failure_raises(self, tmp_path):
        brain = _brain(tmp_path, FakeEmbedder(fail_on=["boom"]))
        brain.add("something")
        with pytest.raises(EmbeddingError):
            brain.search("boom")

    def test_similarity_in_valid_range(self, brain: Brain):
        for text in ["one", "two", "three"]:
            brain.add(text)
        for r in brain.search("four", limit=0):
            assert -1.0 <= r.similarity <= 1.0

    def test_empty_tag_filter_keeps_every_note(self, brain: Brain):
        brain.add("go note", tags=["go"])
        brain.add("untagged note")
        assert len(brain.search("note", limit=0, tags=[])) == 2

    def test_unmatched_tag_filter_returns_empty_list(self, brain: Brain):
        brain.add("go note", tags=["go"])
        assert brain.search("note", tags=["haskell"]) == []


class TestBrainContextualSearch:
    def _brain_with_projects(self, tmp_path) -> Brain:
        embedder = FakeEmbedder(
            vectors={
                "generic": [1.0, 0.0],
                "project note": [0.8, 0.6],
                "brain\nbrain": [1.0, 0.0],
            }
        )
        brain = _brain(tmp_path, embedder)
        brain.add("generic")
        brain.add("project note", project="brain")
        return brain

    def test_project_notes_are_boosted(self, tmp_path):
        brain = self._brain_with_projects(tmp_path)
        ctx = Context(directory="/src/brain", project="brain", description="brain", keywords=("brain",))
        results = brain.contextual_search(ctx)
        # 0.8 * 1.2 = 0.96 stays below the unboosted 1.0 of "generic".
        assert [r.note.content for r in results] == ["generic", "project note"]
        assert results[1].similarity == pytest.approx(0.96)

    def test_boosted_note_can_enter_truncated_results(self, tmp_path):
        embedder = FakeEmbedder(
            vectors={
                "a": [1.0, 0.0],
                "b": [0.95, 0.05],
                "mine": [0.9, 0.44],
                "q": [1.0, 0.0],
            }
        )
        brain = _brain(tmp_path, embedder)
        brain.add("a")
        brain.add("b")
        brain.add("mine", project="proj")
        ctx = Context(directory="/x", project="proj", description="q")
        results = brain.contextual_search(ctx, limit=2)
        assert "mine" in [r.note.content for r in results]

    def test_without_project_no_boost(self, tmp_path):
        brain = self._brain_with_projects(tmp_path)
        ctx = Context(directory="/src/brain", description="brain", keywords=("brain",))
        results = brain.contextual_search(ctx)
        assert results[1].similarity == pytest.approx(0.8)

    def test_empty_context_returns_nothing(self, brain: Brain):
        brain.add("something")
        assert brain.contextual_search(Context(directory="/")) == []


class TestBrainListNotes:
    def test_list_empty(self, brain: Brain):
        assert brain.list_notes() == []

    def test_list_in_insertion_order(self, brain: Brain):
        for text in ["one", "two", "three"]:
            brain.add(text)
        assert [n.content for n in brain.list_notes()] == ["one", "two", "three"]

    def test_list_filters_by_any_tag(self, brain: Brain):
        brain.add("go note", tags=["go"])
        brain.add("rust note", tags=["rust"])
        brain.add("py note", tags=["python"])
        notes = brain.list_notes(tags=["go", "python"])
        assert [n.content for n in notes] == ["go note", "py note"]


class TestBrainReload:
    def test_notes_survive_restart(self, tmp_path):
        first = _brain(tmp_path, FakeEmbedder())
        first.add("remember me", tags=["t"], project="p")

        second = _brain(tmp_path, FakeEmbedder())
        [note] = second.list_notes()
        assert note.content == "remember me"
        assert note.has_embedding
        assert second.search("remember me")[0].similarity == pytest.approx(1.0, abs=1e-5)

    def test_unembeddable_notes_are_skipped_and_logged(self, tmp_path, caplog):
        _brain(tmp_path, FakeEmbedder()).add("fine")
        _brain(tmp_path, FakeEmbedder()).add("broken")

        with caplog.at_level(logging.WARNING, logger="second_brain.brain"):
            brain = _brain(tmp_path, FakeEmbedder(fail_on=["broken"]))

        assert [n.content for n in brain.list_notes()] == ["fine"]
        assert "Skipping note" in caplog.text

    def test_skipped_notes_are_kept_on_disk(self, tmp_path):
        _brain(tmp_path, FakeEmbedder()).add("broken")
        brain = _brain(tmp_path, FakeEmbedder(fail_on=["broken"]))
        brain.add("new")
        saved = [n.content for n in NoteFile(tmp_path / "notes.json").load()]
        assert saved == ["broken", "new"]

    def test_skipped_notes_keep_their_file_position(self, tmp_path):
        first = _brain(tmp_path, FakeEmbedder())
        for text in ["a", "broken", "c"]:
            first.add(text)

        brain = _brain(tmp_path, FakeEmbedder(fail_on=["broken"]))
        assert [n.content for n in brain.list_notes()] == ["a", "c"]
        brain.add("new")

        saved = [n.content for n in NoteFile(tmp_path / "notes.json").load()]
        assert saved == ["a", "broken", "c", "new"]

    def test_reload_replaces_collection(self, tmp_path):
        brain = _brain(tmp_path, FakeEmbedder())
        brain.add("one")
        other = _brain(tmp_path, FakeEmbedder())
        other.add("two")

        assert brain.count() == 1
        assert brain.reload() == 2
        assert [n.content for n in brain.list_notes()] == ["one", "two"]

    def test_corrupt_file_fails_construction(self, tmp_path):
        (tmp_path / "notes.json").write_text("][")
        with pytest.raises(PersistenceError):
            _brain(tmp_path, FakeEmbedder())
